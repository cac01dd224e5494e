from app.models.tenancy import (  # noqa: F401
    Client,
    ClientPlan,
    Company,
    CompanyStatus,
    Employee,
    EMPLOYEE_ROLES,
    PersonStatus,
    Plan,
    Role,
    normalize_role,
)
from app.models.documents import (  # noqa: F401
    Dispute,
    Document,
    DocumentComment,
    DocumentEditHistory,
    DocumentProgress,
    DocumentTag,
    SharedDocumentLink,
)
from app.models.billing import ClientInvoice, CustomInvoice, Invoice  # noqa: F401
