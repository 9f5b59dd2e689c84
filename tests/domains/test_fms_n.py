# tests/domains/test_fms_n.py

"""
Tests of the 'fms' domain.

- EquipmentLifecycle: required fields, serial uniqueness, city resolution,
  notes blob, status-only update, full update, soft delete, deactivation
- ModuleReconciler: replacement leaves exactly one row
- Endpoints: equipment, modules, filter replacements, equipment models
"""

import json

import pytest
from httpx import AsyncClient
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from app.core import database
from app.core.exceptions import DuplicateSerial, NotFound, StoreError, ValidationError
from app.domains.fms import crud as fms_crud
from app.domains.fms import models as fms_models
from app.domains.fms import schemas as fms_schemas
from app.domains.fms import services as fms_services
from app.domains.fms.models import EquipmentStatus
from app.domains.fms.services import EquipmentLifecycle, ModuleReconciler


async def _count(db_session: AsyncSession, model) -> int:
    result = await db_session.execute(select(func.count()).select_from(model))
    return result.scalar_one()


async def _associations(db_session: AsyncSession, equipment_id: int):
    return await fms_crud.owner_module_association.get_by_equipment(db_session, equipment_id=equipment_id)


# =============================================================================
# 1. EquipmentLifecycle.create
# =============================================================================
@pytest.mark.asyncio
async def test_create_reports_every_missing_field(db_session: AsyncSession):
    with pytest.raises(ValidationError) as exc_info:
        await EquipmentLifecycle(db_session).create(fms_schemas.EquipmentCreate())

    assert exc_info.value.fields == ["model_id", "name", "serial_number", "installation_date", "status"]
    assert await _count(db_session, fms_models.Equipment) == 0


@pytest.mark.asyncio
async def test_create_status_zero_is_present_and_blank_name_is_missing(db_session: AsyncSession, equipment_payload):
    payload = fms_schemas.EquipmentCreate(**equipment_payload(status=0, name="  "))

    with pytest.raises(ValidationError) as exc_info:
        await EquipmentLifecycle(db_session).create(payload)

    assert exc_info.value.fields == ["name"]
    assert await _count(db_session, fms_models.Equipment) == 0


@pytest.mark.asyncio
async def test_create_unknown_model_is_rejected(db_session: AsyncSession, equipment_payload):
    payload = fms_schemas.EquipmentCreate(**equipment_payload(model_id=9999))

    with pytest.raises(ValidationError) as exc_info:
        await EquipmentLifecycle(db_session).create(payload)

    assert exc_info.value.fields == ["model_id"]


@pytest.mark.asyncio
async def test_create_stores_row_without_city(equipment_factory):
    equipment = await equipment_factory()

    assert equipment.id is not None
    assert equipment.city_id is None
    assert equipment.status == EquipmentStatus.ACTIVE
    assert equipment.notes is None


@pytest.mark.asyncio
async def test_duplicate_serial_is_case_and_space_insensitive(equipment_factory):
    await equipment_factory(serial_number="ABC-123")

    with pytest.raises(DuplicateSerial):
        await equipment_factory(serial_number="  abc-123 ")


@pytest.mark.asyncio
async def test_serial_of_deleted_equipment_can_be_reused(db_session: AsyncSession, equipment_factory):
    first = await equipment_factory(serial_number="ABC-123")
    await EquipmentLifecycle(db_session).soft_delete(first.id)

    second = await equipment_factory(serial_number="abc-123")

    assert second.id != first.id


@pytest.mark.asyncio
async def test_create_resolves_city_text(db_session: AsyncSession, equipment_factory, city_factory):
    bh = await city_factory("Belo Horizonte", "MG")

    equipment = await equipment_factory(city="belo horizonte")

    assert equipment.city_id == bh.id


@pytest.mark.asyncio
async def test_create_builds_notes_blob(equipment_factory):
    equipment = await equipment_factory(observation="Near the stairs", sprinkler_enabled=True)

    assert json.loads(equipment.notes) == {"text": "Near the stairs", "sprinkler_enabled": True}


@pytest.mark.asyncio
async def test_create_keeps_json_observation_without_known_keys(equipment_factory):
    equipment = await equipment_factory(observation='{"note": "behind the counter"}')

    assert equipment.notes is not None
    assert json.loads(equipment.notes) == {"text": '{"note": "behind the counter"}'}


@pytest.mark.asyncio
async def test_create_reads_known_keys_of_json_observation(equipment_factory):
    equipment = await equipment_factory(observation='{"text": "By the door", "floor": 2}')

    assert json.loads(equipment.notes) == {"text": "By the door"}


@pytest.mark.asyncio
async def test_create_with_owner_creates_association(db_session: AsyncSession, equipment_factory, test_owner):
    equipment = await equipment_factory(
        owner=test_owner, modules={"cold_water": True, "hot_water": False, "pet_fountain": 1}
    )

    rows = await _associations(db_session, equipment.id)
    assert len(rows) == 1
    assert rows[0].owner_id == test_owner.id
    assert (rows[0].cold_water, rows[0].hot_water, rows[0].pet_fountain) == (True, False, True)


@pytest.mark.asyncio
async def test_create_without_owner_leaves_no_association(db_session: AsyncSession, equipment_factory):
    equipment = await equipment_factory()

    assert await _associations(db_session, equipment.id) == []


# =============================================================================
# 2. EquipmentLifecycle.update
# =============================================================================
@pytest.mark.asyncio
async def test_status_only_update_changes_only_status(db_session: AsyncSession, equipment_factory):
    equipment = await equipment_factory(observation="keep me", address="Rua A", number="10")
    before = equipment.model_dump()

    updated = await EquipmentLifecycle(db_session).update(
        equipment.id, fms_schemas.EquipmentUpdate(status="atendimento")
    )
    after = updated.model_dump()

    assert updated.status == EquipmentStatus.IN_SERVICE
    for key in before:
        if key not in ("status", "updated_at"):
            assert after[key] == before[key], key


@pytest.mark.asyncio
async def test_full_update_requires_the_required_fields(db_session: AsyncSession, equipment_factory):
    equipment = await equipment_factory()

    with pytest.raises(ValidationError) as exc_info:
        await EquipmentLifecycle(db_session).update(
            equipment.id, fms_schemas.EquipmentUpdate(name="Renamed")
        )

    assert set(exc_info.value.fields) == {"model_id", "serial_number", "installation_date", "status"}


@pytest.mark.asyncio
async def test_full_update_serial_check_excludes_itself(db_session: AsyncSession, equipment_factory, equipment_payload):
    equipment = await equipment_factory(serial_number="SN-A")
    await equipment_factory(serial_number="SN-B")
    lifecycle = EquipmentLifecycle(db_session)

    updated = await lifecycle.update(
        equipment.id, fms_schemas.EquipmentUpdate(**equipment_payload(serial_number="sn-a", name="Renamed"))
    )
    assert updated.name == "Renamed"

    with pytest.raises(DuplicateSerial):
        await lifecycle.update(
            equipment.id, fms_schemas.EquipmentUpdate(**equipment_payload(serial_number="SN-B"))
        )


@pytest.mark.asyncio
async def test_full_update_merges_notes(db_session: AsyncSession, equipment_factory, equipment_payload):
    equipment = await equipment_factory(observation="Near the stairs", sprinkler_enabled=True)

    updated = await EquipmentLifecycle(db_session).update(
        equipment.id, fms_schemas.EquipmentUpdate(**equipment_payload(sprinkler_enabled=False))
    )

    assert json.loads(updated.notes) == {"text": "Near the stairs", "sprinkler_enabled": False}


@pytest.mark.asyncio
async def test_full_update_keeps_legacy_text_notes(db_session: AsyncSession, equipment_factory, equipment_payload):
    equipment = await equipment_factory()
    equipment.notes = "legacy free text"
    db_session.add(equipment)
    await db_session.commit()

    updated = await EquipmentLifecycle(db_session).update(
        equipment.id,
        fms_schemas.EquipmentUpdate(**equipment_payload(observation='{"sprinkler_enabled": true, "junk": 1}')),
    )

    assert json.loads(updated.notes) == {"text": "legacy free text", "sprinkler_enabled": True}


@pytest.mark.asyncio
async def test_full_update_without_owner_key_keeps_association(
    db_session: AsyncSession, equipment_factory, equipment_payload, test_owner
):
    equipment = await equipment_factory(owner=test_owner, modules={"cold_water": True})

    await EquipmentLifecycle(db_session).update(
        equipment.id, fms_schemas.EquipmentUpdate(**equipment_payload(name="Renamed"))
    )

    rows = await _associations(db_session, equipment.id)
    assert len(rows) == 1
    assert rows[0].cold_water is True


@pytest.mark.asyncio
async def test_full_update_with_null_owner_clears_association(
    db_session: AsyncSession, equipment_factory, equipment_payload, test_owner
):
    equipment = await equipment_factory(owner=test_owner)

    await EquipmentLifecycle(db_session).update(
        equipment.id, fms_schemas.EquipmentUpdate(**equipment_payload(owner_id=None))
    )

    assert await _associations(db_session, equipment.id) == []


@pytest.mark.asyncio
async def test_full_update_changes_city(db_session: AsyncSession, equipment_factory, equipment_payload):
    equipment = await equipment_factory()

    updated = await EquipmentLifecycle(db_session).update(
        equipment.id, fms_schemas.EquipmentUpdate(**equipment_payload(city="Ouro Preto/MG"))
    )

    assert updated.city_id is not None
    assert await fms_crud.equipment.get_city_name(db_session, updated) == "Ouro Preto"


@pytest.mark.asyncio
async def test_update_missing_equipment_is_not_found(db_session: AsyncSession):
    with pytest.raises(NotFound):
        await EquipmentLifecycle(db_session).update(404, fms_schemas.EquipmentUpdate(status=1))


# =============================================================================
# 3. Soft delete / deactivate
# =============================================================================
@pytest.mark.asyncio
async def test_soft_delete_removes_association_and_hides_equipment(
    db_session: AsyncSession, equipment_factory, test_owner
):
    equipment = await equipment_factory(owner=test_owner, modules={"hot_water": True})
    kept = await equipment_factory(serial_number="SN-KEPT")
    lifecycle = EquipmentLifecycle(db_session)

    deleted = await lifecycle.soft_delete(equipment.id)

    assert deleted.status == EquipmentStatus.DELETED
    assert await _associations(db_session, equipment.id) == []
    listed = await fms_crud.equipment.get_multi_active(db_session)
    assert [e.id for e, _ in listed] == [kept.id]


@pytest.mark.asyncio
async def test_soft_delete_is_idempotent_and_terminal(db_session: AsyncSession, equipment_factory):
    equipment = await equipment_factory()
    lifecycle = EquipmentLifecycle(db_session)

    await lifecycle.soft_delete(equipment.id)
    again = await lifecycle.soft_delete(equipment.id)
    assert again.status == EquipmentStatus.DELETED

    with pytest.raises(NotFound):
        await lifecycle.update(equipment.id, fms_schemas.EquipmentUpdate(status="ativo"))
    with pytest.raises(NotFound):
        await lifecycle.deactivate(equipment.id)


@pytest.mark.asyncio
async def test_soft_delete_missing_equipment_is_not_found(db_session: AsyncSession):
    with pytest.raises(NotFound):
        await EquipmentLifecycle(db_session).soft_delete(12345)


@pytest.mark.asyncio
async def test_deactivate_keeps_association(db_session: AsyncSession, equipment_factory, test_owner):
    equipment = await equipment_factory(owner=test_owner)

    deactivated = await EquipmentLifecycle(db_session).deactivate(equipment.id)

    assert deactivated.status == EquipmentStatus.DEACTIVATED
    assert len(await _associations(db_session, equipment.id)) == 1


# =============================================================================
# 4. ModuleReconciler
# =============================================================================
@pytest.mark.asyncio
async def test_replace_twice_leaves_one_row_with_last_flags(db_session: AsyncSession, equipment_factory, test_owner):
    equipment = await equipment_factory()
    reconciler = ModuleReconciler(db_session)

    await reconciler.replace(
        test_owner.id, equipment.id,
        fms_schemas.ModuleFlags(cold_water=True, hot_water=False, pet_fountain=True),
    )
    await reconciler.replace(
        test_owner.id, equipment.id,
        fms_schemas.ModuleFlags(cold_water=False, hot_water=False, pet_fountain=False),
    )

    rows = await _associations(db_session, equipment.id)
    assert len(rows) == 1
    assert (rows[0].cold_water, rows[0].hot_water, rows[0].pet_fountain) == (False, False, False)


@pytest.mark.asyncio
async def test_failed_replace_keeps_previous_association(
    db_session: AsyncSession, equipment_factory, test_owner, monkeypatch
):
    equipment = await equipment_factory()
    reconciler = ModuleReconciler(db_session)
    await reconciler.replace(
        test_owner.id, equipment.id,
        fms_schemas.ModuleFlags(cold_water=True, hot_water=False, pet_fountain=True),
    )

    async def failing_commit(awaitable, seconds, label="db"):
        if label == "replace equipment modules":
            awaitable.close()
            raise StoreError(f"Database error ({label})")
        return await database.run_with_timeout(awaitable, seconds, label)

    monkeypatch.setattr(fms_services, "run_with_timeout", failing_commit)

    with pytest.raises(StoreError):
        await reconciler.replace(
            test_owner.id, equipment.id,
            fms_schemas.ModuleFlags(cold_water=False, hot_water=True, pet_fountain=False),
        )

    rows = await _associations(db_session, equipment.id)
    assert len(rows) == 1
    assert rows[0].owner_id == test_owner.id
    assert (rows[0].cold_water, rows[0].hot_water, rows[0].pet_fountain) == (True, False, True)


@pytest.mark.asyncio
async def test_replace_retries_once_after_unique_conflict(
    db_session: AsyncSession, equipment_factory, test_owner, monkeypatch
):
    equipment = await equipment_factory()
    calls = {"count": 0}

    async def conflict_first_commit(awaitable, seconds, label="db"):
        if label == "replace equipment modules":
            calls["count"] += 1
            if calls["count"] == 1:
                awaitable.close()
                conflict = IntegrityError("INSERT INTO owner_module_associations", {}, Exception("unique"))
                raise StoreError(f"Database error ({label})", original_error=conflict)
        return await database.run_with_timeout(awaitable, seconds, label)

    monkeypatch.setattr(fms_services, "run_with_timeout", conflict_first_commit)

    row = await ModuleReconciler(db_session).replace(
        test_owner.id, equipment.id, fms_schemas.ModuleFlags(hot_water=True)
    )

    assert calls["count"] == 2
    assert row.hot_water is True
    rows = await _associations(db_session, equipment.id)
    assert len(rows) == 1
    assert rows[0].id == row.id


@pytest.mark.asyncio
@pytest.mark.parametrize("owner_id, equipment_id", [(None, 1), (0, 1), (1, 0), (-3, 1), ("x", 1)])
async def test_replace_with_invalid_ids_is_a_no_op(db_session: AsyncSession, owner_id, equipment_id):
    result = await ModuleReconciler(db_session).replace(owner_id, equipment_id, fms_schemas.ModuleFlags(cold_water=True))

    assert result is None
    assert await _count(db_session, fms_models.OwnerModuleAssociation) == 0


# =============================================================================
# 5. Equipment endpoints
# =============================================================================
@pytest.mark.asyncio
async def test_create_equipment_endpoint(client: AsyncClient, equipment_payload, test_owner):
    print("\n--- Running test_create_equipment_endpoint ---")
    payload = equipment_payload(
        city="Juiz de Fora/MG", owner_id=test_owner.id, modules={"cold_water": True}, observation="Hall"
    )
    response = await client.post("/api/v1/fms/equipments", json=payload)
    print(f"Response JSON: {response.json()}")

    assert response.status_code == 201
    body = response.json()
    assert body["city_name"] == "Juiz de Fora"
    assert body["status"] == 0

    modules = await client.get(f"/api/v1/fms/equipments/{body['id']}/modules")
    assert modules.status_code == 200
    assert modules.json()["cold_water"] is True


@pytest.mark.asyncio
async def test_create_equipment_endpoint_missing_fields(client: AsyncClient):
    response = await client.post("/api/v1/fms/equipments", json={"name": "Only a name"})

    assert response.status_code == 400
    assert response.json()["fields"] == ["model_id", "serial_number", "installation_date", "status"]


@pytest.mark.asyncio
async def test_create_equipment_endpoint_conflicts(client: AsyncClient, equipment_payload, city_factory):
    assert (await client.post("/api/v1/fms/equipments", json=equipment_payload())).status_code == 201
    duplicate = await client.post("/api/v1/fms/equipments", json=equipment_payload())
    assert duplicate.status_code == 409

    await city_factory("Campo Belo", "MG")
    await city_factory("Campo Belo", "SP")
    ambiguous = await client.post("/api/v1/fms/equipments", json=equipment_payload(serial_number="SN-2", city="Campo Belo"))
    assert ambiguous.status_code == 409

    unknown_city = await client.post("/api/v1/fms/equipments", json=equipment_payload(serial_number="SN-3", city="Nowhere"))
    assert unknown_city.status_code == 400


@pytest.mark.asyncio
async def test_list_equipments_hides_deleted_and_filters_status(client: AsyncClient, equipment_factory, city_factory):
    await city_factory("Lavras", "MG")
    active = await equipment_factory(serial_number="SN-1", city="Lavras")
    serviced = await equipment_factory(serial_number="SN-2", status="atendimento")
    deleted = await equipment_factory(serial_number="SN-3")
    assert (await client.delete(f"/api/v1/fms/equipments/{deleted.id}")).status_code == 204

    response = await client.get("/api/v1/fms/equipments")
    assert response.status_code == 200
    body = response.json()
    assert [e["id"] for e in body] == [serviced.id, active.id]
    assert body[1]["city_name"] == "Lavras"

    filtered = await client.get("/api/v1/fms/equipments", params={"status": "atendimento"})
    assert [e["id"] for e in filtered.json()] == [serviced.id]


@pytest.mark.asyncio
async def test_equipment_endpoints_lifecycle(client: AsyncClient, equipment_factory):
    equipment = await equipment_factory()
    url = f"/api/v1/fms/equipments/{equipment.id}"

    toggled = await client.put(url, json={"status": "desativado"})
    assert toggled.status_code == 200
    assert toggled.json()["status"] == EquipmentStatus.DEACTIVATED

    reactivated = await client.put(url, json={"status": 0})
    assert reactivated.json()["status"] == EquipmentStatus.ACTIVE

    deactivated = await client.post(f"{url}/deactivate")
    assert deactivated.json()["status"] == EquipmentStatus.DEACTIVATED

    assert (await client.delete(url)).status_code == 204
    assert (await client.get(url)).status_code == 404
    assert (await client.put(url, json={"status": 1})).status_code == 404
    assert (await client.delete(url)).status_code == 204
    assert (await client.delete("/api/v1/fms/equipments/99999")).status_code == 404


@pytest.mark.asyncio
async def test_empty_update_is_rejected(client: AsyncClient, equipment_factory):
    equipment = await equipment_factory()

    response = await client.put(f"/api/v1/fms/equipments/{equipment.id}", json={})

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_replace_modules_endpoint(client: AsyncClient, db_session: AsyncSession, equipment_factory, test_owner):
    equipment = await equipment_factory()
    url = f"/api/v1/fms/equipments/{equipment.id}/modules"

    first = await client.put(url, json={"owner_id": test_owner.id, "cold_water": True, "pet_fountain": True})
    assert first.status_code == 200
    second = await client.put(url, json={"owner_id": test_owner.id})
    assert second.status_code == 200
    assert second.json()["cold_water"] is False

    assert len(await _associations(db_session, equipment.id)) == 1

    unknown_owner = await client.put(url, json={"owner_id": 999})
    assert unknown_owner.status_code == 400
    assert unknown_owner.json()["fields"] == ["owner_id"]


# =============================================================================
# 6. Filter replacement endpoints
# =============================================================================
@pytest.mark.asyncio
async def test_filter_replacement_history(client: AsyncClient, equipment_factory):
    equipment = await equipment_factory()
    url = f"/api/v1/fms/equipments/{equipment.id}/filter_replacements"

    first = await client.post(url, json={"filter_type": "carbon", "replaced_on": "2024-01-10", "flow_rate": 1.5})
    second = await client.post(url, json={"filter_type": "sediment", "filter_name": "PP 5um", "replaced_on": "2024-06-01"})
    assert first.status_code == 201
    assert second.status_code == 201

    history = await client.get(url)
    assert history.status_code == 200
    assert [r["filter_type"] for r in history.json()] == ["sediment", "carbon"]
    assert history.json()[1]["flow_rate"] == 1.5


@pytest.mark.asyncio
async def test_filter_replacement_on_deleted_equipment_is_not_found(client: AsyncClient, equipment_factory):
    equipment = await equipment_factory()
    await client.delete(f"/api/v1/fms/equipments/{equipment.id}")

    response = await client.post(
        f"/api/v1/fms/equipments/{equipment.id}/filter_replacements",
        json={"filter_type": "carbon", "replaced_on": "2024-01-10"},
    )

    assert response.status_code == 404


# =============================================================================
# 7. Equipment model endpoints
# =============================================================================
@pytest.mark.asyncio
async def test_equipment_model_crud(client: AsyncClient):
    created = await client.post("/api/v1/fms/models", json={"name": "  Fountain F2  "})
    assert created.status_code == 201
    model_id = created.json()["id"]
    assert created.json()["name"] == "Fountain F2"

    assert (await client.post("/api/v1/fms/models", json={"name": "   "})).status_code == 400

    listed = await client.get("/api/v1/fms/models")
    assert [m["id"] for m in listed.json()] == [model_id]

    renamed = await client.put(f"/api/v1/fms/models/{model_id}", json={"name": "Fountain F3"})
    assert renamed.json()["name"] == "Fountain F3"

    assert (await client.delete(f"/api/v1/fms/models/{model_id}")).status_code == 204
    assert (await client.get(f"/api/v1/fms/models/{model_id}")).status_code == 404
    assert (await client.delete(f"/api/v1/fms/models/{model_id}")).status_code == 404
