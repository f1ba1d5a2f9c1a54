"""Business constants shared across the booking domain."""

from datetime import timedelta

# Minimum gap between the end of the pickup slot and the start of delivery.
STANDARD_DELIVERY_LEAD_TIME = timedelta(hours=72)
EXPRESS_DELIVERY_LEAD_TIME = timedelta(hours=24)

BOOKING_NUMBER_PREFIX = "BK"

DEFAULT_CURRENCY = "eur"

SPECIAL_INSTRUCTIONS_MAX_LENGTH = 500
CANCELLATION_REASON_MIN_LENGTH = 10
CANCELLATION_REASON_MAX_LENGTH = 500

SUPERSEDED_SUBSCRIPTION_REASON = "superseded_by_new_subscription"

# Subscription credits: one credit covers a booking up to the free weight.
CREDIT_MAX_FREE_WEIGHT_KG = 15
CREDIT_PRICE_PER_KG_CENTS = 357
# Used when the booking form does not send a weight.
CREDIT_DEFAULT_BOOKING_WEIGHT_KG = 10
# Weekly allowance per plan; unknown plans get the default.
PLAN_WEEKLY_CREDITS = {"monthly": 2, "quarterly": 3}
DEFAULT_WEEKLY_CREDITS = 2
