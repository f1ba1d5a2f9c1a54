from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    Text,
)

metadata = MetaData()

services = Table(
    "services",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("name", String(150), nullable=False),
    Column("base_price", Numeric(10, 2), nullable=False),
    Column("service_type", String(16), nullable=False, default="standard"),
    Column("is_active", Boolean, nullable=False, default=True),
)

logistic_slots = Table(
    "logistic_slots",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("role", String(16), nullable=False),
    Column("slot_date", Date, nullable=False),
    Column("start_time", String(8), nullable=False),
    Column("end_time", String(8), nullable=False),
    Column("is_open", Boolean, nullable=False, default=True),
    Column("created_at", DateTime(timezone=True)),
    Index("ix_logistic_slots_role_date", "role", "slot_date", "start_time"),
)

booking_sequences = Table(
    "booking_sequences",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("created_at", DateTime(timezone=True)),
)

bookings = Table(
    "bookings",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("booking_number", String(32), nullable=False, unique=True),
    Column("status", String(32), nullable=False),
    Column("payment_status", String(16), nullable=False),
    Column("service_type", String(16), nullable=False),
    # Owner: registered user with saved addresses, or a guest snapshot.
    Column("user_id", String(64), index=True),
    Column("pickup_address_id", String(64)),
    Column("delivery_address_id", String(64)),
    Column("guest_contact", JSON(none_as_null=True)),
    Column("guest_pickup_address", JSON(none_as_null=True)),
    Column("guest_delivery_address", JSON(none_as_null=True)),
    # Schedule: slot pair, or legacy date + time range.
    Column("pickup_slot_id", String(36), ForeignKey("logistic_slots.id")),
    Column("delivery_slot_id", String(36), ForeignKey("logistic_slots.id")),
    Column("pickup_date", Date),
    Column("pickup_time_slot", String(11)),
    Column("currency", String(3), nullable=False),
    Column("total_amount_cents", Integer, nullable=False),
    Column("total_amount", Float, nullable=False),
    Column("special_instructions", Text),
    Column("subscription_id", String(36), ForeignKey("subscriptions.id")),
    Column("used_subscription_credit", Boolean, nullable=False, default=False),
    Column("credit_discount_cents", Integer, nullable=False, default=0),
    Column("booking_weight_kg", Float),
    Column("stripe_checkout_session_id", String(255), index=True),
    Column("stripe_payment_intent_id", String(255), index=True),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
    Column("paid_at", DateTime(timezone=True)),
    Column("cancelled_at", DateTime(timezone=True)),
    Column("cancellation_reason", Text),
    Column("cancelled_by", String(64)),
    Column("version", Integer, nullable=False, default=0),
    CheckConstraint(
        "(user_id IS NOT NULL AND guest_contact IS NULL) "
        "OR (user_id IS NULL AND guest_contact IS NOT NULL)",
        name="ck_bookings_single_owner",
    ),
    CheckConstraint(
        "(pickup_slot_id IS NOT NULL AND delivery_slot_id IS NOT NULL "
        "AND pickup_date IS NULL AND pickup_time_slot IS NULL) "
        "OR (pickup_slot_id IS NULL AND delivery_slot_id IS NULL "
        "AND pickup_date IS NOT NULL AND pickup_time_slot IS NOT NULL)",
        name="ck_bookings_single_schedule",
    ),
)

booking_items = Table(
    "booking_items",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("booking_id", String(36), ForeignKey("bookings.id"), nullable=False, index=True),
    Column("service_id", String(36), nullable=False),
    Column("service_name", String(150), nullable=False),
    Column("quantity", Integer, nullable=False),
    Column("unit_price_cents", Integer, nullable=False),
    CheckConstraint("quantity >= 1", name="ck_booking_items_quantity"),
)

subscriptions = Table(
    "subscriptions",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("user_id", String(64), nullable=False, index=True),
    Column("plan_id", String(64), nullable=False),
    Column("status", String(32), nullable=False),
    Column("stripe_subscription_id", String(255), nullable=False, unique=True),
    Column("stripe_customer_id", String(255)),
    Column("current_period_start", DateTime(timezone=True)),
    Column("current_period_end", DateTime(timezone=True)),
    Column("cancel_at_period_end", Boolean, nullable=False, default=False),
    Column("canceled_at", DateTime(timezone=True)),
    Column("cancelled", Boolean, nullable=False, default=False),
    Column("cancellation_reason", String(255)),
    Column("stripe_created_at", DateTime(timezone=True)),
    Column("created_at", DateTime(timezone=True)),
    Column("updated_at", DateTime(timezone=True)),
    Column("version", Integer, nullable=False, default=0),
)

# One row per user; updating it serializes activations and credit use for that user.
subscription_ledger_locks = Table(
    "subscription_ledger_locks",
    metadata,
    Column("user_id", String(64), primary_key=True),
    Column("version", Integer, nullable=False, default=0),
    Column("updated_at", DateTime(timezone=True)),
)

subscription_payments = Table(
    "subscription_payments",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("subscription_id", String(36), ForeignKey("subscriptions.id"), nullable=False),
    Column("stripe_invoice_id", String(255), nullable=False, unique=True),
    Column("amount_cents", Integer, nullable=False),
    Column("currency", String(3), nullable=False),
    Column("status", String(16), nullable=False),
    Column("paid_at", DateTime(timezone=True)),
    Column("created_at", DateTime(timezone=True)),
    Column("updated_at", DateTime(timezone=True)),
)

credit_usages = Table(
    "credit_usages",
    metadata,
    Column("id", String(36), primary_key=True),
    Column("user_id", String(64), nullable=False),
    Column("subscription_id", String(36), ForeignKey("subscriptions.id"), nullable=False),
    Column("booking_id", String(36), ForeignKey("bookings.id"), nullable=False, unique=True),
    Column("week_start_date", Date, nullable=False),
    Column("credits_before", Integer, nullable=False),
    Column("credits_after", Integer, nullable=False),
    Column("booking_weight_kg", Float, nullable=False),
    Column("amount_saved_cents", Integer, nullable=False),
    Column("currency", String(3), nullable=False),
    Column("used_at", DateTime(timezone=True), nullable=False),
    Index("ix_credit_usages_user_week", "user_id", "week_start_date"),
)
