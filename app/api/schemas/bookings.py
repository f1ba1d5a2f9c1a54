from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, constr

from app.domain.constants import SPECIAL_INSTRUCTIONS_MAX_LENGTH
from app.domain.entities.booking import (
    Booking,
    BookingPaymentStatus,
    BookingStatus,
    GuestOwner,
    RegisteredOwner,
    ServiceClass,
)
from app.domain.value_objects.scheduling import LegacySchedule, SlotSchedule

Name = constr(strip_whitespace=True, min_length=1, max_length=100)
Instructions = constr(strip_whitespace=True, max_length=SPECIAL_INSTRUCTIONS_MAX_LENGTH)


class GuestContactIn(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    email: EmailStr
    first_name: Name = Field(alias="firstName")
    last_name: Name = Field(alias="lastName")
    phone: constr(strip_whitespace=True, min_length=6, max_length=30)


class GuestAddressIn(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    street_address: constr(strip_whitespace=True, min_length=3, max_length=200) = Field(
        alias="streetAddress"
    )
    city: constr(strip_whitespace=True, min_length=1, max_length=100)
    postal_code: constr(strip_whitespace=True, min_length=2, max_length=12) = Field(
        alias="postalCode"
    )
    building_info: constr(strip_whitespace=True, max_length=200) | None = Field(
        default=None, alias="buildingInfo"
    )
    access_instructions: constr(strip_whitespace=True, max_length=300) | None = Field(
        default=None, alias="accessInstructions"
    )


class BookingItemIn(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    service_id: constr(strip_whitespace=True, min_length=1) = Field(alias="serviceId")
    quantity: int = Field(ge=1, le=100)


class ScheduleFields(BaseModel):
    """Flat scheduling fields as sent by the booking forms."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    pickup_slot_id: str | None = Field(default=None, alias="pickupSlotId")
    delivery_slot_id: str | None = Field(default=None, alias="deliverySlotId")
    pickup_date: date | None = Field(default=None, alias="pickupDate")
    pickup_time_slot: str | None = Field(default=None, alias="pickupTimeSlot")

    def has_slot_fields(self) -> bool:
        return self.pickup_slot_id is not None or self.delivery_slot_id is not None

    def has_legacy_fields(self) -> bool:
        return self.pickup_date is not None or self.pickup_time_slot is not None


class CreateBookingRequest(ScheduleFields):
    pickup_address_id: str | None = Field(default=None, alias="pickupAddressId")
    delivery_address_id: str | None = Field(default=None, alias="deliveryAddressId")
    guest_contact: GuestContactIn | None = Field(default=None, alias="guestContact")
    guest_pickup_address: GuestAddressIn | None = Field(default=None, alias="guestPickupAddress")
    guest_delivery_address: GuestAddressIn | None = Field(
        default=None, alias="guestDeliveryAddress"
    )
    items: list[BookingItemIn] = Field(min_length=1)
    service_type: ServiceClass | None = Field(default=None, alias="serviceType")
    special_instructions: Instructions | None = Field(default=None, alias="specialInstructions")
    booking_weight_kg: float | None = Field(default=None, ge=1, le=100, alias="bookingWeightKg")
    use_subscription_credit: bool = Field(default=True, alias="useSubscriptionCredit")


class ModifyBookingRequest(ScheduleFields):
    pickup_address_id: str | None = Field(default=None, alias="pickupAddressId")
    delivery_address_id: str | None = Field(default=None, alias="deliveryAddressId")
    guest_pickup_address: GuestAddressIn | None = Field(default=None, alias="guestPickupAddress")
    guest_delivery_address: GuestAddressIn | None = Field(
        default=None, alias="guestDeliveryAddress"
    )
    special_instructions: Instructions | None = Field(default=None, alias="specialInstructions")


class CancelBookingRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    reason: str


class AdvanceBookingStatusRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    status: BookingStatus


class CreateBookingResponse(BaseModel):
    id: str
    booking_number: str
    status: BookingStatus
    payment_status: BookingPaymentStatus
    total_amount_cents: int
    total_amount: float
    currency: str
    used_subscription_credit: bool = False
    credit_discount_cents: int = 0


class BookingItemOut(BaseModel):
    service_id: str
    service_name: str
    quantity: int
    unit_price_cents: int
    line_total_cents: int


class BookingResponse(BaseModel):
    id: str
    booking_number: str
    status: BookingStatus
    payment_status: BookingPaymentStatus
    service_type: ServiceClass
    is_guest: bool
    user_id: str | None = None
    guest_email: str | None = None
    pickup_address_id: str | None = None
    delivery_address_id: str | None = None
    pickup_slot_id: str | None = None
    delivery_slot_id: str | None = None
    pickup_date: date | None = None
    pickup_time_slot: str | None = None
    items: list[BookingItemOut]
    subtotal_amount_cents: int
    credit_discount_cents: int = 0
    used_subscription_credit: bool = False
    total_amount_cents: int
    total_amount: float
    currency: str
    special_instructions: str | None = None
    stripe_checkout_session_id: str | None = None
    stripe_payment_intent_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    paid_at: datetime | None = None
    cancelled_at: datetime | None = None
    cancellation_reason: str | None = None

    @classmethod
    def from_entity(cls, booking: Booking) -> "BookingResponse":
        data: dict = {
            "id": booking.id,
            "booking_number": booking.booking_number,
            "status": booking.status,
            "payment_status": booking.payment_status,
            "service_type": booking.service_class,
            "is_guest": booking.is_guest,
            "items": [
                BookingItemOut(
                    service_id=item.service_id,
                    service_name=item.service_name,
                    quantity=item.quantity,
                    unit_price_cents=item.unit_price_cents,
                    line_total_cents=item.line_total_cents,
                )
                for item in booking.items
            ],
            "subtotal_amount_cents": booking.subtotal_amount_cents,
            "credit_discount_cents": booking.credit_discount_cents,
            "used_subscription_credit": booking.used_subscription_credit,
            "total_amount_cents": booking.total_amount_cents,
            "total_amount": booking.total_amount,
            "currency": booking.currency,
            "special_instructions": booking.special_instructions,
            "stripe_checkout_session_id": booking.stripe_checkout_session_id,
            "stripe_payment_intent_id": booking.stripe_payment_intent_id,
            "created_at": booking.created_at,
            "updated_at": booking.updated_at,
            "paid_at": booking.paid_at,
            "cancelled_at": booking.cancelled_at,
            "cancellation_reason": booking.cancellation_reason,
        }
        if isinstance(booking.owner, RegisteredOwner):
            data["user_id"] = booking.owner.user_id
            data["pickup_address_id"] = booking.owner.pickup_address_id
            data["delivery_address_id"] = booking.owner.delivery_address_id
        elif isinstance(booking.owner, GuestOwner):
            data["guest_email"] = booking.owner.contact.email
        if isinstance(booking.schedule, SlotSchedule):
            data["pickup_slot_id"] = booking.schedule.pickup_slot_id
            data["delivery_slot_id"] = booking.schedule.delivery_slot_id
        elif isinstance(booking.schedule, LegacySchedule):
            data["pickup_date"] = booking.schedule.pickup_date
            data["pickup_time_slot"] = str(booking.schedule.pickup_time_range)
        return cls(**data)


class CheckoutSessionResponse(BaseModel):
    booking_id: str
    session_id: str
    checkout_url: str
