"""
Argument sets: unordered string-to-string bags of query parameters.

The resource wrappers start with some defaults and let the callers override
them with extra arguments, e.g. ``vdc``, ``name``, ``sort``::

    args = Arguments(vdc=vdc_id).merge(*extra_args)
    disks = await manager.get_items('v1/disk', args, decode=Disk.from_dict)

The merging is right-biased: the later sets override the earlier ones.
"""
from typing import Dict, Mapping, Optional


class Arguments(Dict[str, str]):

    @classmethod
    def defaults(cls) -> "Arguments":
        return cls()

    def merge(self, *extras: Optional[Mapping[str, str]]) -> "Arguments":
        """
        Produce a new argument set with the extra sets applied on top of this one.

        Neither this set nor the extra sets are modified. ``None`` is skipped,
        so that optional arguments can be passed through as is.
        """
        merged = type(self)(self)
        for extra in extras:
            if extra is not None:
                merged.update(extra)
        return merged

    def to_query(self) -> Dict[str, str]:
        """ Convert to URL query parameters (values are always stringified). """
        return {str(key): str(val) for key, val in self.items()}
