# tests/test_cards.py - Card ledger tests
from datetime import datetime, timezone

import pytest
from httpx import AsyncClient

from taskboard.errors import AccessDenied, NotFound, ValidationFailed
from taskboard.patch import FieldPatch
from taskboard.services.boards import BoardRegistry
from taskboard.services.cards import CardLedger
from taskboard.services.comments import CommentLog
from taskboard.services.lists import ListLedger
from tests.conftest import get_auth_headers, personal_org_id


async def _board_with_lists(db, user, org_id, name="Board"):
    board = await BoardRegistry.create(db, user.id, org_id, name)
    lists = await ListLedger.list_by_board(db, board.id, user.id)
    return board, {l.name: l for l in lists}


@pytest.mark.asyncio
async def test_create_defaults_and_hydration(db_session, alice, alice_org):
    _, lists = await _board_with_lists(db_session, alice, alice_org)
    card = await CardLedger.create(db_session, lists["To Do"].id, alice.id, "First")

    assert card.position == 1
    assert card.created_by == alice.id
    assert card.creator.id == alice.id
    assert card.creator.name == "Alice"
    assert card.creator.email == "alice@example.com"


@pytest.mark.asyncio
async def test_default_position_is_max_plus_one(db_session, alice, alice_org):
    _, lists = await _board_with_lists(db_session, alice, alice_org)
    list_id = lists["To Do"].id
    for position in (1, 2, 5):
        await CardLedger.create(db_session, list_id, alice.id, f"Card {position}", position=position)

    card = await CardLedger.create(db_session, list_id, alice.id, "Appended")
    assert card.position == 6


@pytest.mark.asyncio
async def test_explicit_zero_position_kept(db_session, alice, alice_org):
    _, lists = await _board_with_lists(db_session, alice, alice_org)
    await CardLedger.create(db_session, lists["To Do"].id, alice.id, "A")
    card = await CardLedger.create(db_session, lists["To Do"].id, alice.id, "Top", position=0)
    assert card.position == 0

    titles = [c.title for c in await CardLedger.get_by_list(db_session, lists["To Do"].id, alice.id)]
    assert titles == ["Top", "A"]


@pytest.mark.asyncio
async def test_update_tri_state(db_session, alice, alice_org):
    _, lists = await _board_with_lists(db_session, alice, alice_org)
    due = datetime(2030, 1, 15, 12, 0, tzinfo=timezone.utc)
    card = await CardLedger.create(
        db_session, lists["To Do"].id, alice.id, "Task", description="Details", due_date=due,
    )

    updated = await CardLedger.update(db_session, card.id, alice.id, title=FieldPatch.set("Renamed"))
    assert updated.title == "Renamed"
    assert updated.description == "Details"
    assert updated.due_date is not None

    updated = await CardLedger.update(
        db_session, card.id, alice.id,
        description=FieldPatch.clear(), due_date=FieldPatch.clear(),
    )
    assert updated.title == "Renamed"
    assert updated.description is None
    assert updated.due_date is None


@pytest.mark.asyncio
async def test_update_rejects_clearing_title(db_session, alice, alice_org):
    _, lists = await _board_with_lists(db_session, alice, alice_org)
    card = await CardLedger.create(db_session, lists["To Do"].id, alice.id, "Task")

    with pytest.raises(ValidationFailed):
        await CardLedger.update(db_session, card.id, alice.id, title=FieldPatch.clear())
    with pytest.raises(ValidationFailed):
        await CardLedger.update(db_session, card.id, alice.id, title=FieldPatch.set("   "))
    assert (await CardLedger.get_by_id(db_session, card.id, alice.id)).title == "Task"


@pytest.mark.asyncio
async def test_create_rejects_blank_title(db_session, alice, alice_org):
    _, lists = await _board_with_lists(db_session, alice, alice_org)
    with pytest.raises(ValidationFailed):
        await CardLedger.create(db_session, lists["To Do"].id, alice.id, "   ")
    assert await CardLedger.get_by_list(db_session, lists["To Do"].id, alice.id) == []


@pytest.mark.asyncio
async def test_get_by_id_errors(db_session, alice, alice_org, bob):
    _, lists = await _board_with_lists(db_session, alice, alice_org)
    card = await CardLedger.create(db_session, lists["To Do"].id, alice.id, "Task")

    with pytest.raises(NotFound):
        await CardLedger.get_by_id(db_session, "missing", alice.id)
    with pytest.raises(AccessDenied):
        await CardLedger.get_by_id(db_session, card.id, bob.id)


@pytest.mark.asyncio
async def test_get_by_id_is_stable(db_session, alice, alice_org):
    _, lists = await _board_with_lists(db_session, alice, alice_org)
    card = await CardLedger.create(db_session, lists["To Do"].id, alice.id, "Task")
    assert await CardLedger.get_by_id(db_session, card.id, alice.id) == \
        await CardLedger.get_by_id(db_session, card.id, alice.id)


@pytest.mark.asyncio
async def test_get_by_board_includes_empty_lists(db_session, alice, alice_org):
    board, lists = await _board_with_lists(db_session, alice, alice_org)
    await CardLedger.create(db_session, lists["Done"].id, alice.id, "Shipped")

    grouped = await CardLedger.get_by_board(db_session, board.id, alice.id)
    assert list(grouped.keys()) == [lists["To Do"].id, lists["In Progress"].id, lists["Done"].id]
    assert grouped[lists["To Do"].id] == []
    assert [c.title for c in grouped[lists["Done"].id]] == ["Shipped"]


@pytest.mark.asyncio
async def test_move_appends_when_position_omitted(db_session, alice, alice_org):
    _, lists = await _board_with_lists(db_session, alice, alice_org)
    await CardLedger.create(db_session, lists["Done"].id, alice.id, "Existing", position=3)
    card = await CardLedger.create(db_session, lists["To Do"].id, alice.id, "Mover")

    moved = await CardLedger.move(db_session, card.id, alice.id, lists["Done"].id)
    assert moved.list_id == lists["Done"].id
    assert moved.position == 4


@pytest.mark.asyncio
async def test_move_to_missing_list_fails_validation(db_session, alice, alice_org):
    _, lists = await _board_with_lists(db_session, alice, alice_org)
    card = await CardLedger.create(db_session, lists["To Do"].id, alice.id, "Stay")

    with pytest.raises(ValidationFailed):
        await CardLedger.move(db_session, card.id, alice.id, "missing-list", 1)
    assert (await CardLedger.get_by_id(db_session, card.id, alice.id)).list_id == lists["To Do"].id


@pytest.mark.asyncio
async def test_move_without_destination_access_leaves_card(db_session, alice, alice_org, bob):
    _, lists = await _board_with_lists(db_session, alice, alice_org)
    card = await CardLedger.create(db_session, lists["To Do"].id, alice.id, "Stay")
    bob_org = await personal_org_id(db_session, bob)
    _, bob_lists = await _board_with_lists(db_session, bob, bob_org, "Bob's")

    with pytest.raises(AccessDenied):
        await CardLedger.move(db_session, card.id, alice.id, bob_lists["To Do"].id, 1)

    unchanged = await CardLedger.get_by_id(db_session, card.id, alice.id)
    assert unchanged.list_id == lists["To Do"].id
    assert unchanged.position == 1


@pytest.mark.asyncio
async def test_move_foreign_card_denied(db_session, alice, alice_org, bob):
    _, lists = await _board_with_lists(db_session, alice, alice_org)
    card = await CardLedger.create(db_session, lists["To Do"].id, alice.id, "Mine")
    with pytest.raises(AccessDenied):
        await CardLedger.move(db_session, card.id, bob.id, lists["Done"].id, 1)


@pytest.mark.asyncio
async def test_delete_removes_comments(db_session, alice, alice_org):
    _, lists = await _board_with_lists(db_session, alice, alice_org)
    card = await CardLedger.create(db_session, lists["To Do"].id, alice.id, "Doomed")
    comment = await CommentLog.create(db_session, card.id, alice.id, "Note")

    await CardLedger.delete(db_session, card.id, alice.id)

    with pytest.raises(NotFound):
        await CardLedger.get_by_id(db_session, card.id, alice.id)
    with pytest.raises(NotFound):
        await CommentLog.update(db_session, comment.id, alice.id, "Edit")


# ============================================================
# END TO END
# ============================================================

@pytest.mark.asyncio
async def test_alice_sprint_scenario(client: AsyncClient):
    res = await client.post("/api/v1/auth/register", json={
        "email": "alice@x.com", "password": "Password123", "display_name": "Alice",
    })
    assert res.status_code == 201
    headers = {"Authorization": f"Bearer {res.json()['access_token']}"}

    orgs = (await client.get("/api/v1/organizations", headers=headers)).json()
    assert len(orgs) == 1
    assert orgs[0]["role"] == "owner"
    org_id = orgs[0]["id"]

    res = await client.post(
        "/api/v1/boards", json={"organization_id": org_id, "name": "Sprint 1"}, headers=headers,
    )
    board_id = res.json()["id"]

    lists = (await client.get(f"/api/v1/boards/{board_id}/lists", headers=headers)).json()
    assert [l["name"] for l in lists] == ["To Do", "In Progress", "Done"]
    todo, in_progress = lists[0]["id"], lists[1]["id"]

    res = await client.post(f"/api/v1/lists/{todo}/cards", json={"title": "Fix bug"}, headers=headers)
    assert res.status_code == 201
    card = res.json()
    assert card["position"] == 1
    assert card["creator"]["name"] == "Alice"

    res = await client.post(
        f"/api/v1/cards/{card['id']}/move", json={"list_id": in_progress, "position": 1}, headers=headers,
    )
    assert res.status_code == 200
    assert res.json()["list_id"] == in_progress

    grouped = (await client.get(f"/api/v1/boards/{board_id}/cards", headers=headers)).json()
    assert grouped[todo] == []
    assert [c["title"] for c in grouped[in_progress]] == ["Fix bug"]


@pytest.mark.asyncio
async def test_card_http_errors(client: AsyncClient, alice, alice_org, bob):
    headers = get_auth_headers(alice)
    board_id = (await client.post(
        "/api/v1/boards", json={"organization_id": alice_org, "name": "B"}, headers=headers,
    )).json()["id"]
    todo = (await client.get(f"/api/v1/boards/{board_id}/lists", headers=headers)).json()[0]["id"]
    card_id = (await client.post(
        f"/api/v1/lists/{todo}/cards", json={"title": "T", "description": "D"}, headers=headers,
    )).json()["id"]

    res = await client.get(f"/api/v1/cards/{card_id}", headers=get_auth_headers(bob))
    assert res.status_code == 403
    res = await client.get("/api/v1/cards/missing", headers=headers)
    assert res.status_code == 404
    res = await client.post(f"/api/v1/cards/{card_id}/move", json={"list_id": "missing"}, headers=headers)
    assert res.status_code == 422
    assert res.json()["code"] == "validation_failed"

    res = await client.patch(f"/api/v1/cards/{card_id}", json={"description": None}, headers=headers)
    assert res.status_code == 200
    assert res.json()["description"] is None
    assert res.json()["title"] == "T"

    res = await client.patch(f"/api/v1/cards/{card_id}", json={"title": None}, headers=headers)
    assert res.status_code == 422

    res = await client.delete(f"/api/v1/cards/{card_id}", headers=headers)
    assert res.status_code == 200
    res = await client.get(f"/api/v1/cards/{card_id}", headers=headers)
    assert res.status_code == 404
