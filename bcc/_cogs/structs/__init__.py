"""
All the structures needed for the client's internal use.

The structures are only data classes and simple helpers on them.
They do not perform any HTTP exchanges on their own.
"""
