from __future__ import annotations


class UserRole:
    TENANT = "tenant"
    LANDLORD = "landlord"
    ADMIN = "admin"

    ALL = (TENANT, LANDLORD, ADMIN)


class UserStatus:
    ACTIVE = "active"
    SUSPENDED = "suspended"

    ALL = (ACTIVE, SUSPENDED)


class ListingStatus:
    """Listing lifecycle. Owned by the listings service; only VERIFIED matters here."""

    PENDING_VERIFICATION = "pending_verification"
    VERIFIED = "verified"
    REJECTED = "rejected"
    RENTED = "rented"

    ALL = (PENDING_VERIFICATION, VERIFIED, REJECTED, RENTED)


class RentalRequestStatus:
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    CANCELLED = "cancelled"

    ALL = (PENDING, ACCEPTED, REJECTED, CANCELLED)


class ContractStatus:
    DRAFT = "draft"
    SIGNED = "signed"
    CANCELLED = "cancelled"

    ALL = (DRAFT, SIGNED, CANCELLED)


class SignatureMethod:
    CHECKBOX = "checkbox"
    TYPED_NAME = "typed_name"
    DRAWN = "drawn"

    ALL = (CHECKBOX, TYPED_NAME, DRAWN)
