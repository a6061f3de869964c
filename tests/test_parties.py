from app.domain.parties import Membership, PartyRelation, classify_party, is_party
from app.domain.rental_request_transitions import can_transition, is_permitted, is_valid_target


# ============================================================================
# PARTY CLASSIFICATION
# ============================================================================


def test_landlord_is_classified_as_landlord():
    membership = Membership.of(1, [2, 3])
    assert classify_party(membership, 1, "landlord") == PartyRelation.LANDLORD


def test_tenant_member_is_classified_as_tenant_member():
    membership = Membership.of(1, [2, 3])
    assert classify_party(membership, 3, "tenant") == PartyRelation.TENANT_MEMBER


def test_admin_without_membership_gets_override():
    membership = Membership.of(1, [2])
    assert classify_party(membership, 99, "admin") == PartyRelation.ADMIN_OVERRIDE


def test_admin_who_is_landlord_acts_as_landlord():
    membership = Membership.of(1, [2])
    assert classify_party(membership, 1, "admin") == PartyRelation.LANDLORD


def test_stranger_is_unauthorized():
    membership = Membership.of(1, [2])
    assert classify_party(membership, 5, "tenant") == PartyRelation.UNAUTHORIZED
    assert classify_party(membership, 5, "landlord") == PartyRelation.UNAUTHORIZED


def test_total_parties_counts_landlord_and_tenants():
    assert Membership.of(1, []).total_parties == 1
    assert Membership.of(1, [2, 3, 3]).total_parties == 3


def test_only_landlord_and_tenant_members_are_parties():
    assert is_party(PartyRelation.LANDLORD)
    assert is_party(PartyRelation.TENANT_MEMBER)
    assert not is_party(PartyRelation.ADMIN_OVERRIDE)
    assert not is_party(PartyRelation.UNAUTHORIZED)


# ============================================================================
# RENTAL REQUEST TRANSITIONS
# ============================================================================


def test_pending_can_move_to_every_terminal_status():
    for target in ("accepted", "rejected", "cancelled"):
        assert can_transition("pending", target)


def test_terminal_statuses_have_no_transitions():
    for current in ("accepted", "rejected", "cancelled"):
        for target in ("pending", "accepted", "rejected", "cancelled"):
            assert not can_transition(current, target)


def test_pending_is_not_a_valid_target():
    assert not is_valid_target("pending")
    assert not is_valid_target("archived")
    assert is_valid_target("accepted")


def test_only_requester_can_cancel():
    assert is_permitted(PartyRelation.TENANT_MEMBER, "cancelled")
    assert not is_permitted(PartyRelation.LANDLORD, "cancelled")
    assert not is_permitted(PartyRelation.ADMIN_OVERRIDE, "cancelled")


def test_owner_or_admin_can_accept_and_reject():
    for target in ("accepted", "rejected"):
        assert is_permitted(PartyRelation.LANDLORD, target)
        assert is_permitted(PartyRelation.ADMIN_OVERRIDE, target)
        assert not is_permitted(PartyRelation.TENANT_MEMBER, target)
        assert not is_permitted(PartyRelation.UNAUTHORIZED, target)
