from doccustody.models.custody import (  # noqa: F401
    CustodyRecord,
    CustodyStatus,
    Holder,
    HolderType,
    TransferHistoryEntry,
    TransferType,
)
from doccustody.models.directory import (  # noqa: F401
    ClearanceAgent,
    Client,
    Document,
    Person,
    PersonRole,
    Role,
)
