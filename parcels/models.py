"""
parcels/models.py -- Domain dataclass for land parcels.

Pure data container. The soft-delete lifecycle (active -> deleted, one way,
idempotent) is enforced in parcels/store.py.
"""

from dataclasses import dataclass


@dataclass
class Parcel:
    """A named plot of land at a location.

    deleted is the soft-delete flag: deleted parcels stay in the store and are
    listed separately. id is a UUID string, generated by the store when the
    caller does not supply one.
    """

    name: str
    location: str
    id: str = ""
    deleted: bool = False
    created_at: str = ""  # ISO 8601, set by store on insert
