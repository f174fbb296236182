"""
General-purpose helpers not related to the client's domain itself
(neither to the API exchanges nor to the task waiting nor to the paging),
which are used to prepare and control the runtime environment.

These are things that should better be in the standard library
or in the dependencies.

As a rule of thumb, helpers MUST be abstracted from the client
to such an extent that they could be extracted as reusable libraries.
If they implement concepts of the control plane's API, they are not "helpers"
(consider making them clients or configs).
"""
