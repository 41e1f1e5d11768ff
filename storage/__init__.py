from .container import StorageContainer
from .contracts import BuildRepo, ProjectRepo
from .models import BuildTaskRecord, Message, ProjectRecord

__all__ = [
    "StorageContainer",
    "ProjectRepo",
    "BuildRepo",
    "Message",
    "ProjectRecord",
    "BuildTaskRecord",
]
