from prometheus_client import Counter

DOCUMENT_TRANSITIONS = Counter(
    "docflow_document_transitions_total",
    "Document lifecycle transitions",
    ["transition"],
)
INVOICES_GENERATED = Counter(
    "docflow_invoices_generated_total",
    "Invoices created by the periodic generator",
    ["kind"],
)
INVOICE_REMINDERS = Counter(
    "docflow_invoice_reminders_total",
    "Unpaid invoice reminder emails",
    ["outcome"],
)
