import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from decimal import Decimal

from sqlalchemy.orm import Session

from app.db.models.contract import Contract as ContractModel
from app.db.models.contract import ContractTenant as ContractTenantModel
from app.db.models.user import User as UserModel
from app.errors import DuplicateResourceError
from app.services.contract import create_contract


# ============================================================================
# GET CONTRACT TESTS
# ============================================================================


def test_get_contract_as_landlord(client, contract, landlord, tenant, auth_headers):
    response = client.get(f"/api/v1/contracts/{contract.id}", headers=auth_headers(landlord))
    assert response.status_code == 200
    data = response.json()
    assert data["id"] == contract.id
    assert data["status"] == "draft"
    assert data["start_date"] == "2025-03-01"
    assert data["end_date"] is None
    assert Decimal(data["rent"]) == Decimal("850.00")
    assert data["landlord"] == {"id": landlord.id, "full_name": "Lena Landlord", "email": "landlord@example.com"}
    assert data["tenants"] == [{"id": tenant.id, "full_name": "Tom Tenant", "email": "tenant@example.com"}]
    assert data["signatures"] == []
    assert data["proposed_end_dates"] == {"landlord": None, "tenants": {}}
    assert data["signed_count"] == 0
    assert data["total_parties"] == 2


def test_get_contract_as_tenant_and_admin(client, contract, tenant, admin, auth_headers):
    for user in (tenant, admin):
        response = client.get(f"/api/v1/contracts/{contract.id}", headers=auth_headers(user))
        assert response.status_code == 200


def test_get_contract_outsider_forbidden(client, contract, outsider, auth_headers):
    response = client.get(f"/api/v1/contracts/{contract.id}", headers=auth_headers(outsider))
    assert response.status_code == 403
    assert response.json()["code"] == "FORBIDDEN"


def test_get_unknown_contract_is_not_found_for_anyone(client, outsider, auth_headers):
    response = client.get("/api/v1/contracts/9999", headers=auth_headers(outsider))
    assert response.status_code == 404
    assert response.json() == {"detail": "Contract not found", "code": "NOT_FOUND"}


def test_group_contract_counts_every_party(client, group_contract, other_tenant, auth_headers):
    response = client.get(f"/api/v1/contracts/{group_contract.id}", headers=auth_headers(other_tenant))
    assert response.status_code == 200
    data = response.json()
    assert data["total_parties"] == 3
    assert len(data["tenants"]) == 2


# ============================================================================
# LIST CONTRACTS TESTS
# ============================================================================


def test_list_contracts_scoped_by_role(client, contract, tenant, landlord, admin, outsider, auth_headers):
    for user, expected in ((tenant, 1), (landlord, 1), (admin, 1), (outsider, 0)):
        response = client.get("/api/v1/contracts", headers=auth_headers(user))
        assert response.status_code == 200
        assert response.json()["total"] == expected

    items = client.get("/api/v1/contracts", headers=auth_headers(tenant)).json()["items"]
    assert items[0]["id"] == contract.id
    assert [t["id"] for t in items[0]["tenants"]] == [tenant.id]


def test_list_contracts_tenant_cannot_filter_other_tenant(client, contract, tenant, outsider, auth_headers):
    response = client.get(
        "/api/v1/contracts",
        params={"tenant_id": tenant.id},
        headers=auth_headers(outsider),
    )
    assert response.status_code == 403


def test_list_contracts_admin_filters(client, contract, landlord, admin, tenant, auth_headers):
    response = client.get(
        "/api/v1/contracts",
        params={"landlord_id": landlord.id, "tenant_id": tenant.id, "status": "draft"},
        headers=auth_headers(admin),
    )
    assert response.json()["total"] == 1

    response = client.get(
        "/api/v1/contracts",
        params={"status": "signed"},
        headers=auth_headers(admin),
    )
    assert response.json()["total"] == 0


# ============================================================================
# UPDATE CONTRACT TESTS
# ============================================================================


def test_tenant_can_update_end_date_only(client, contract, tenant, auth_headers):
    response = client.put(
        f"/api/v1/contracts/{contract.id}",
        json={"end_date": "2026-02-28"},
        headers=auth_headers(tenant),
    )
    assert response.status_code == 200
    assert response.json()["end_date"] == "2026-02-28"


def test_end_date_can_be_cleared(client, contract, landlord, auth_headers):
    client.put(
        f"/api/v1/contracts/{contract.id}",
        json={"end_date": "2026-02-28"},
        headers=auth_headers(landlord),
    )
    response = client.put(
        f"/api/v1/contracts/{contract.id}",
        json={"end_date": None},
        headers=auth_headers(landlord),
    )
    assert response.status_code == 200
    assert response.json()["end_date"] is None


def test_tenant_cannot_update_rent(client, contract, tenant, auth_headers):
    response = client.put(
        f"/api/v1/contracts/{contract.id}",
        json={"rent": "900.00"},
        headers=auth_headers(tenant),
    )
    assert response.status_code == 403
    assert response.json()["detail"] == "You do not have permission to update this contract"


def test_tenant_cannot_smuggle_fields_with_end_date(db: Session, client, contract, tenant, auth_headers):
    response = client.put(
        f"/api/v1/contracts/{contract.id}",
        json={"end_date": "2026-02-28", "deposit": "0"},
        headers=auth_headers(tenant),
    )
    assert response.status_code == 403

    db.expire_all()
    refreshed = db.get(ContractModel, contract.id)
    assert refreshed.end_date is None
    assert Decimal(refreshed.deposit) == Decimal("1700.00")


def test_outsider_cannot_update_end_date(client, contract, outsider, auth_headers):
    response = client.put(
        f"/api/v1/contracts/{contract.id}",
        json={"end_date": "2026-02-28"},
        headers=auth_headers(outsider),
    )
    assert response.status_code == 403


def test_landlord_full_edit(client, contract, landlord, auth_headers):
    response = client.put(
        f"/api/v1/contracts/{contract.id}",
        json={"rent": "900.50", "deposit": "1800", "start_date": "2025-04-01"},
        headers=auth_headers(landlord),
    )
    assert response.status_code == 200
    data = response.json()
    assert Decimal(data["rent"]) == Decimal("900.50")
    assert Decimal(data["deposit"]) == Decimal("1800")
    assert data["start_date"] == "2025-04-01"


def test_admin_full_edit(client, contract, admin, auth_headers):
    response = client.put(
        f"/api/v1/contracts/{contract.id}",
        json={"rent": "700"},
        headers=auth_headers(admin),
    )
    assert response.status_code == 200


def test_end_date_before_start_date_rejected(client, contract, tenant, auth_headers):
    response = client.put(
        f"/api/v1/contracts/{contract.id}",
        json={"end_date": "2025-02-01"},
        headers=auth_headers(tenant),
    )
    assert response.status_code == 400
    assert response.json() == {"detail": "End date must be after start date", "code": "VALIDATION_ERROR"}


def test_start_date_after_existing_end_date_rejected(client, contract, landlord, auth_headers):
    client.put(
        f"/api/v1/contracts/{contract.id}",
        json={"end_date": "2025-12-31"},
        headers=auth_headers(landlord),
    )
    response = client.put(
        f"/api/v1/contracts/{contract.id}",
        json={"start_date": "2026-01-01"},
        headers=auth_headers(landlord),
    )
    assert response.status_code == 400


def test_empty_update_rejected(client, contract, landlord, auth_headers):
    response = client.put(f"/api/v1/contracts/{contract.id}", json={}, headers=auth_headers(landlord))
    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION_ERROR"


def test_schema_validation_errors(client, contract, landlord, auth_headers):
    for body in ({"rent": "-1"}, {"status": "archived"}, {"start_date": None}):
        response = client.put(
            f"/api/v1/contracts/{contract.id}",
            json=body,
            headers=auth_headers(landlord),
        )
        assert response.status_code == 422


def test_update_unknown_contract(client, landlord, auth_headers):
    response = client.put(
        "/api/v1/contracts/9999",
        json={"end_date": "2026-01-01"},
        headers=auth_headers(landlord),
    )
    assert response.status_code == 404


def test_status_override_to_signed_is_logged(client, contract, landlord, auth_headers, caplog):
    with caplog.at_level(logging.WARNING, logger="app.services.contract"):
        response = client.put(
            f"/api/v1/contracts/{contract.id}",
            json={"status": "signed"},
            headers=auth_headers(landlord),
        )
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "signed"
    assert data["signed_at"] is not None
    assert data["signed_count"] == 0
    assert any("bypassing signatures" in record.getMessage() for record in caplog.records)


def test_leaving_signed_status_clears_signed_at(client, contract, landlord, auth_headers):
    url = f"/api/v1/contracts/{contract.id}"
    response = client.put(url, json={"status": "signed"}, headers=auth_headers(landlord))
    assert response.json()["signed_at"] is not None

    for status in ("draft", "cancelled"):
        response = client.put(url, json={"status": status}, headers=auth_headers(landlord))
        assert response.status_code == 200
        assert response.json()["status"] == status
        assert response.json()["signed_at"] is None
        client.put(url, json={"status": "signed"}, headers=auth_headers(landlord))


def test_tenant_cannot_override_status(client, contract, tenant, auth_headers):
    response = client.put(
        f"/api/v1/contracts/{contract.id}",
        json={"status": "signed"},
        headers=auth_headers(tenant),
    )
    assert response.status_code == 403


def test_reviving_cancelled_contract_conflicts_with_live_one(db: Session, client, contract, landlord, tenant, auth_headers):
    contract.status = "cancelled"
    db.commit()

    replacement = ContractModel(
        listing_id=contract.listing_id,
        landlord_user_id=landlord.id,
        start_date=contract.start_date,
        rent=contract.rent,
        deposit=contract.deposit,
        status="draft",
    )
    db.add(replacement)
    db.flush()
    db.add(ContractTenantModel(contract_id=replacement.id, tenant_user_id=tenant.id))
    db.commit()

    response = client.put(
        f"/api/v1/contracts/{contract.id}",
        json={"status": "draft"},
        headers=auth_headers(landlord),
    )
    assert response.status_code == 409
    assert response.json()["code"] == "DUPLICATE_RESOURCE"

    db.expire_all()
    assert db.get(ContractModel, contract.id).status == "cancelled"


# ============================================================================
# CREATE CONTRACT TESTS
# ============================================================================


def _create(client, headers: dict, **overrides):
    body = {
        "start_date": "2025-03-01",
        "end_date": "2026-02-28",
        "rent": "900.00",
        "deposit": "1800.00",
        **overrides,
    }
    return client.post("/api/v1/contracts", json=body, headers=headers)


def _live_contracts(db: Session, listing_id: int) -> int:
    return (
        db.query(ContractModel)
        .filter(ContractModel.listing_id == listing_id, ContractModel.status != "cancelled")
        .count()
    )


def test_landlord_drafts_group_contract_then_everyone_signs(
    client, accepted_request, landlord, tenant, other_tenant, auth_headers, notifier
):
    response = _create(
        client,
        auth_headers(landlord),
        rental_request_id=accepted_request.id,
        tenant_ids=[other_tenant.id],
    )
    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "draft"
    assert data["landlord_user_id"] == landlord.id
    assert data["end_date"] == "2026-02-28"
    assert Decimal(data["rent"]) == Decimal("900.00")
    assert [t["id"] for t in data["tenants"]] == sorted([tenant.id, other_tenant.id])
    assert data["total_parties"] == 3

    event, payload = notifier.events[-1]
    assert event == "contract_created"
    assert payload["contract_id"] == data["id"]
    assert payload["tenant_user_ids"] == sorted([tenant.id, other_tenant.id])
    assert payload["rental_request_id"] == accepted_request.id

    contract_id = data["id"]
    results = [
        client.post(f"/api/v1/contracts/{contract_id}/sign", headers=auth_headers(user)).json()
        for user in (tenant, other_tenant, landlord)
    ]
    assert [result["finalized"] for result in results] == [False, False, True]
    final = results[-1]["contract"]
    assert final["status"] == "signed"
    assert final["signed_count"] == 3
    assert notifier.names().count("contract_signed") == 1


def test_requester_is_always_a_tenant_member(client, accepted_request, landlord, tenant, auth_headers):
    response = _create(
        client,
        auth_headers(landlord),
        rental_request_id=accepted_request.id,
        tenant_ids=[tenant.id],
    )
    assert response.status_code == 201
    data = response.json()
    assert [t["id"] for t in data["tenants"]] == [tenant.id]
    assert data["total_parties"] == 2


def test_admin_drafts_contract_for_listing_owner(client, accepted_request, landlord, admin, auth_headers):
    response = _create(client, auth_headers(admin), rental_request_id=accepted_request.id, end_date=None)
    assert response.status_code == 201
    data = response.json()
    assert data["landlord_user_id"] == landlord.id
    assert data["end_date"] is None


def test_only_listing_owner_or_admin_can_draft(
    db: Session, client, accepted_request, tenant, outsider, make_user, auth_headers
):
    other_landlord = make_user(role="landlord")
    for user in (tenant, outsider, other_landlord):
        response = _create(client, auth_headers(user), rental_request_id=accepted_request.id)
        assert response.status_code == 403
        assert response.json() == {"detail": "You do not own this listing", "code": "FORBIDDEN"}
    assert _live_contracts(db, accepted_request.listing_id) == 0


def test_draft_needs_an_accepted_request(client, rental_request, landlord, auth_headers):
    for request_id in (rental_request.id, 9999):
        response = _create(client, auth_headers(landlord), rental_request_id=request_id)
        assert response.status_code == 404
        assert response.json()["detail"] == "Accepted rental request not found"


def test_draft_conflicts_with_live_contract(db: Session, client, contract, rental_request, landlord, auth_headers):
    response = _create(client, auth_headers(landlord), rental_request_id=rental_request.id)
    assert response.status_code == 409
    assert response.json()["code"] == "DUPLICATE_RESOURCE"
    assert _live_contracts(db, rental_request.listing_id) == 1


def test_draft_validation_errors(db: Session, client, accepted_request, landlord, auth_headers):
    headers = auth_headers(landlord)

    response = _create(client, headers, rental_request_id=accepted_request.id, end_date="2025-02-01")
    assert response.status_code == 400
    assert response.json() == {"detail": "End date must be after start date", "code": "VALIDATION_ERROR"}

    response = _create(client, headers, rental_request_id=accepted_request.id, rent="-1")
    assert response.status_code == 422

    response = _create(client, headers, rental_request_id=accepted_request.id, deposit="-5")
    assert response.status_code == 422

    response = _create(client, headers, rental_request_id=accepted_request.id, tenant_ids=[landlord.id])
    assert response.status_code == 400
    assert response.json()["detail"] == f"User {landlord.id} is not a tenant"

    response = _create(client, headers, rental_request_id=accepted_request.id, tenant_ids=[9999])
    assert response.status_code == 400
    assert response.json()["detail"] == "User 9999 does not exist"

    assert _live_contracts(db, accepted_request.listing_id) == 0


def test_concurrent_drafts_create_one_contract(database, db: Session, accepted_request, landlord):
    request_id = accepted_request.id
    listing_id = accepted_request.listing_id
    landlord_id = landlord.id
    # Release the fixture session's lock before the workers start
    db.commit()

    def draft_in_own_session(_: int) -> str:
        session = database.session()
        try:
            user = session.get(UserModel, landlord_id)
            create_contract(
                session,
                user,
                rental_request_id=request_id,
                start_date=date(2025, 3, 1),
                rent=Decimal("900.00"),
            )
            return "created"
        except DuplicateResourceError:
            return "conflict"
        finally:
            session.close()

    with ThreadPoolExecutor(max_workers=4) as pool:
        results = list(pool.map(draft_in_own_session, range(4)))

    assert results.count("created") == 1
    assert results.count("conflict") == 3
    assert _live_contracts(db, listing_id) == 1
