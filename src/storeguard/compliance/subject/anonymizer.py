"""Profile anonymization for subjects under legal hold."""

from storeguard.db.models.commerce import Customer

ANONYMIZED_DISPLAY_NAME = "Deleted User"
ANONYMIZED_EMAIL_DOMAIN = "anonymized.local"

CLEARED_ATTRIBUTES = (
    "billing_address",
    "billing_city",
    "billing_state",
    "billing_zip",
    "billing_country",
    "phone",
    "crm_contact_id",
    "crm_last_synced_at",
)


def anonymized_email(subject_id: int) -> str:
    return f"deleted-{subject_id}@{ANONYMIZED_EMAIL_DOMAIN}"


def anonymize_profile(customer: Customer) -> list[str]:
    """Replace identity fields with opaque sentinels and drop contact attributes.

    The row itself stays so that retained orders keep a valid owner.

    Returns:
        Names of the fields that were changed
    """
    customer.email = anonymized_email(customer.id)
    customer.username = f"deleted_user_{customer.id}"
    customer.display_name = ANONYMIZED_DISPLAY_NAME
    customer.first_name = ""
    customer.last_name = ""
    for attribute in CLEARED_ATTRIBUTES:
        setattr(customer, attribute, None)
    return ["email", "username", "display_name", "first_name", "last_name", *CLEARED_ATTRIBUTES]
