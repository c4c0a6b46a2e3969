"""
Receipt processing statuses
"""
RECEIPT_STATUS_PROCESSING = "PROCESSING"            # OCR running
RECEIPT_STATUS_REVIEW_REQUIRED = "REVIEW_REQUIRED"  # OCR done, waiting for the user
RECEIPT_STATUS_CONFIRMED = "CONFIRMED"              # items assigned to members
RECEIPT_STATUS_FAILED = "FAILED"
