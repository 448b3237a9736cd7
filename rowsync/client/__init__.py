"""Client side of the protocol: the editable form model and its submit cycle."""

from .change_tracker import ChangeTracker, FormError
from .correlator import IndexCorrelator
from .error_mapper import ErrorMapper
from .events import FormEvents, Subscription
from .form import SubmitCycle, SyncForm
from .payload_builder import SyncPayloadBuilder
from .session import SyncClient
from .temp_ids import TemporaryIdGenerator

__all__ = [
    "ChangeTracker",
    "ErrorMapper",
    "FormError",
    "FormEvents",
    "IndexCorrelator",
    "Subscription",
    "SubmitCycle",
    "SyncClient",
    "SyncForm",
    "SyncPayloadBuilder",
    "TemporaryIdGenerator",
]
