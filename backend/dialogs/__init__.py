from .context import AwaitableResult, DialogStack, Message
from .location_dialog import LocationDialog, create_place
from .required_fields import LocationRequiredFieldsDialog
from .resources import LocationResourceManager
from .retrievers import create_location_retriever_dialog

__all__ = [
    "AwaitableResult",
    "DialogStack",
    "Message",
    "LocationDialog",
    "create_place",
    "LocationRequiredFieldsDialog",
    "LocationResourceManager",
    "create_location_retriever_dialog",
]
