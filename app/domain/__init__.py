"""
Domain layer of the laundry booking engine.

Pure business rules with no framework dependencies:
- entities/: Booking, LogisticSlot, Subscription, SubscriptionPayment
- value_objects/: Money, BookingNumber, scheduling modes
- services/: slot scheduling rules
- errors.py: domain exceptions
"""
