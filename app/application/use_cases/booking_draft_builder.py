"""Assembles and validates a booking request before anything is persisted."""

from dataclasses import dataclass
from datetime import date, timedelta

from app.api.schemas.bookings import CreateBookingRequest, GuestAddressIn, ScheduleFields
from app.application.interfaces.clock import Clock
from app.application.interfaces.credit_repo import CreditUsageRepo
from app.application.interfaces.service_catalog import ServiceCatalog
from app.application.interfaces.slot_repo import SlotRepo
from app.application.interfaces.subscription_repo import SubscriptionRepo
from app.application.use_cases.subscription_credits import current_credits
from app.domain.constants import CREDIT_DEFAULT_BOOKING_WEIGHT_KG, DEFAULT_CURRENCY
from app.domain.entities.booking import (
    BookingItem,
    BookingOwner,
    GuestAddress,
    GuestContact,
    GuestOwner,
    RegisteredOwner,
    ServiceClass,
)
from app.domain.entities.logistic_slot import LogisticSlot
from app.domain.errors import ValidationError
from app.domain.services.slot_scheduler import resolve_service_class, validate_slot_pair
from app.domain.services.subscription_credits import credit_discount_cents
from app.domain.value_objects.money import Money
from app.domain.value_objects.scheduling import (
    LegacySchedule,
    SchedulingMode,
    SlotSchedule,
    TimeRange,
)


@dataclass(frozen=True)
class CreditRedemption:
    """A weekly credit the new booking will consume."""

    subscription_id: str
    weight_kg: float
    discount_cents: int
    credits_before: int
    week_start_date: date


@dataclass
class BookingDraft:
    owner: BookingOwner
    schedule: SchedulingMode
    items: list[BookingItem]
    service_class: ServiceClass
    special_instructions: str | None
    credit: CreditRedemption | None = None


def to_guest_address(address: GuestAddressIn) -> GuestAddress:
    return GuestAddress(
        street_address=address.street_address,
        city=address.city,
        postal_code=address.postal_code,
        building_info=address.building_info,
        access_instructions=address.access_instructions,
    )


class BookingDraftBuilder:
    """
    Validation is fail-fast: the first problem found is raised as a
    ValidationError naming the offending field.
    """

    def __init__(
        self,
        slot_repo: SlotRepo,
        service_catalog: ServiceCatalog,
        clock: Clock,
        currency: str = DEFAULT_CURRENCY,
        subscription_repo: SubscriptionRepo | None = None,
        credit_repo: CreditUsageRepo | None = None,
    ) -> None:
        self._slot_repo = slot_repo
        self._service_catalog = service_catalog
        self._clock = clock
        self._currency = currency
        self._subscription_repo = subscription_repo
        self._credit_repo = credit_repo

    async def build(self, request: CreateBookingRequest, actor_user_id: str | None) -> BookingDraft:
        # Scheduling mode and identity are checked before any lookup.
        self.check_schedule_fields(request)
        owner = self.build_owner(request, actor_user_id)
        items, item_classes = await self._build_items(request)
        service_class = resolve_service_class(request.service_type, item_classes)
        schedule = await self.resolve_schedule(request, service_class)
        return BookingDraft(
            owner=owner,
            schedule=schedule,
            items=items,
            service_class=service_class,
            special_instructions=request.special_instructions or None,
            credit=await self._redeem_credit(request, owner),
        )

    # === Scheduling ===

    def check_schedule_fields(self, fields: ScheduleFields) -> None:
        if fields.has_slot_fields() and fields.has_legacy_fields():
            conflicting = "pickup_date" if fields.pickup_date is not None else "pickup_time_slot"
            raise ValidationError(
                conflicting,
                "cannot be combined with pickup_slot_id/delivery_slot_id; "
                "use either a slot pair or a legacy pickup date and time",
            )

    async def resolve_schedule(
        self,
        fields: ScheduleFields,
        service_class: ServiceClass,
        current: SchedulingMode | None = None,
    ) -> SchedulingMode:
        """
        Turn flat form fields into a scheduling mode.

        When ``current`` is given (modification), fields of the same mode that
        the request leaves out are taken from it.
        """
        self.check_schedule_fields(fields)
        if fields.has_slot_fields():
            pickup_slot_id = fields.pickup_slot_id
            delivery_slot_id = fields.delivery_slot_id
            if isinstance(current, SlotSchedule):
                pickup_slot_id = pickup_slot_id or current.pickup_slot_id
                delivery_slot_id = delivery_slot_id or current.delivery_slot_id
            return await self._slot_schedule(pickup_slot_id, delivery_slot_id, service_class)

        if fields.has_legacy_fields():
            pickup_date = fields.pickup_date
            time_slot = fields.pickup_time_slot
            if isinstance(current, LegacySchedule):
                pickup_date = pickup_date or current.pickup_date
                time_slot = time_slot or str(current.pickup_time_range)
            return self._legacy_schedule(pickup_date, time_slot)

        if current is not None:
            return current
        raise ValidationError(
            "schedule",
            "either pickup_slot_id and delivery_slot_id, "
            "or pickup_date and pickup_time_slot are required",
        )

    async def pickup_date_of(self, schedule: SchedulingMode) -> date | None:
        if isinstance(schedule, LegacySchedule):
            return schedule.pickup_date
        slot = await self._slot_repo.get(schedule.pickup_slot_id)
        return slot.slot_date if slot else None

    async def _slot_schedule(
        self,
        pickup_slot_id: str | None,
        delivery_slot_id: str | None,
        service_class: ServiceClass,
    ) -> SlotSchedule:
        if not pickup_slot_id:
            raise ValidationError("pickup_slot_id", "is required when delivery_slot_id is set")
        if not delivery_slot_id:
            raise ValidationError("delivery_slot_id", "is required when pickup_slot_id is set")
        pickup_slot = await self._load_slot(pickup_slot_id, "pickup_slot_id")
        delivery_slot = await self._load_slot(delivery_slot_id, "delivery_slot_id")
        validate_slot_pair(pickup_slot, delivery_slot, service_class, self._clock.today())
        return SlotSchedule(pickup_slot_id=pickup_slot_id, delivery_slot_id=delivery_slot_id)

    async def _load_slot(self, slot_id: str, field: str) -> LogisticSlot:
        slot = await self._slot_repo.get(slot_id)
        if slot is None:
            raise ValidationError(field, f"unknown slot {slot_id}")
        return slot

    def _legacy_schedule(self, pickup_date: date | None, time_slot: str | None) -> LegacySchedule:
        if pickup_date is None:
            raise ValidationError("pickup_date", "is required when pickup_time_slot is set")
        if not time_slot:
            raise ValidationError("pickup_time_slot", "is required when pickup_date is set")
        try:
            time_range = TimeRange.parse(time_slot)
        except ValueError as exc:
            raise ValidationError("pickup_time_slot", str(exc)) from exc
        tomorrow = self._clock.today() + timedelta(days=1)
        if pickup_date < tomorrow:
            raise ValidationError("pickup_date", "must be tomorrow or later")
        return LegacySchedule(pickup_date=pickup_date, pickup_time_range=time_range)

    # === Identity ===

    def build_owner(self, request: CreateBookingRequest, actor_user_id: str | None) -> BookingOwner:
        has_address_ids = request.pickup_address_id is not None or request.delivery_address_id is not None
        has_guest_bundle = any(
            value is not None
            for value in (
                request.guest_contact,
                request.guest_pickup_address,
                request.guest_delivery_address,
            )
        )
        if has_address_ids and has_guest_bundle:
            raise ValidationError(
                "guest_contact", "cannot be combined with pickup/delivery address ids"
            )

        if has_guest_bundle:
            if actor_user_id:
                raise ValidationError(
                    "guest_contact", "signed-in users book with their saved addresses"
                )
            if request.guest_contact is None:
                raise ValidationError("guest_contact", "is required for guest bookings")
            if request.guest_pickup_address is None:
                raise ValidationError("guest_pickup_address", "is required for guest bookings")
            if request.guest_delivery_address is None:
                raise ValidationError("guest_delivery_address", "is required for guest bookings")
            contact = request.guest_contact
            return GuestOwner(
                contact=GuestContact(
                    email=str(contact.email).lower(),
                    first_name=contact.first_name,
                    last_name=contact.last_name,
                    phone=contact.phone,
                ),
                pickup_address=to_guest_address(request.guest_pickup_address),
                delivery_address=to_guest_address(request.guest_delivery_address),
            )

        if has_address_ids:
            if not actor_user_id:
                raise ValidationError("user_id", "address ids require a signed-in user")
            if not request.pickup_address_id:
                raise ValidationError("pickup_address_id", "is required")
            if not request.delivery_address_id:
                raise ValidationError("delivery_address_id", "is required")
            return RegisteredOwner(
                user_id=actor_user_id,
                pickup_address_id=request.pickup_address_id,
                delivery_address_id=request.delivery_address_id,
            )

        raise ValidationError(
            "identity",
            "either pickup/delivery address ids or a guest contact with two addresses is required",
        )

    # === Items ===

    async def _build_items(
        self, request: CreateBookingRequest
    ) -> tuple[list[BookingItem], list[ServiceClass]]:
        service_ids = [item.service_id for item in request.items]
        if len(set(service_ids)) != len(service_ids):
            raise ValidationError("items", "each service may appear only once")

        services = await self._service_catalog.get_many(service_ids)
        items: list[BookingItem] = []
        item_classes: list[ServiceClass] = []
        for index, item in enumerate(request.items):
            service = services.get(item.service_id)
            if service is None:
                raise ValidationError(f"items[{index}].service_id", f"unknown service {item.service_id}")
            unit_price = Money.from_major(service.base_price, self._currency)
            items.append(
                BookingItem(
                    service_id=service.id,
                    service_name=service.name,
                    quantity=item.quantity,
                    unit_price_cents=unit_price.cents,
                )
            )
            item_classes.append(service.service_class)
        return items, item_classes

    # === Subscription credits ===

    async def _redeem_credit(
        self, request: CreateBookingRequest, owner: BookingOwner
    ) -> CreditRedemption | None:
        """
        Reserve one weekly credit for a subscriber, or None to pay the full price.

        Must run inside the creating unit of work: the per-user lock taken here
        is what keeps two bookings from spending the same credit.
        """
        if not request.use_subscription_credit or not isinstance(owner, RegisteredOwner):
            return None
        if self._subscription_repo is None or self._credit_repo is None:
            return None
        await self._subscription_repo.lock_user(owner.user_id)
        current = await current_credits(
            self._subscription_repo, self._credit_repo, owner.user_id, self._clock.today()
        )
        if current is None:
            return None
        subscription, credits = current
        if not credits.has_credit:
            return None
        weight_kg = request.booking_weight_kg or CREDIT_DEFAULT_BOOKING_WEIGHT_KG
        return CreditRedemption(
            subscription_id=subscription.id,
            weight_kg=weight_kg,
            discount_cents=credit_discount_cents(weight_kg),
            credits_before=credits.credits_remaining,
            week_start_date=credits.week_start_date,
        )
