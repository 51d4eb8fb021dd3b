"""Customer-facing return policy."""

from returns.return_request.return_request import ReturnReason

RETURN_WINDOW_DAYS = 7

NON_RETURNABLE_CATEGORIES = ("PERISHABLE", "CUSTOMIZED", "INTIMATE_APPAREL", "DIGITAL")

REQUIRED_DOCUMENTS = (
    "Original invoice",
    "Product images showing issue",
    "Original packaging (if available)",
)


def return_policy() -> dict:
    return {
        "return_window_days": RETURN_WINDOW_DAYS,
        "eligible_reasons": [reason.value for reason in ReturnReason],
        "non_returnable_categories": list(NON_RETURNABLE_CATEGORIES),
        "refund_processing_time": "5-7 business days",
        "pickup_info": "Free pickup available in select areas",
        "required_documents": list(REQUIRED_DOCUMENTS),
    }
