import pytest

from database import BudgetPlan
from errors import InvalidStatus, NotFound
from line_items import CategoryKey
from store import BudgetPlanStore, category_revision


def test_category_blob_round_trip(db, plan_id):
    store = BudgetPlanStore(db)
    assert store.get_category_blob(plan_id, CategoryKey.KERJA_TAMBAH) is None

    store.put_category_blob(plan_id, CategoryKey.KERJA_TAMBAH, "[]")

    assert store.get_category_blob(plan_id, "kerja_tambah") == "[]"
    assert db.get(BudgetPlan, plan_id).json_kerja_tambah == "[]"


def test_plan_supervisor(db, users, plan_id):
    assert BudgetPlanStore(db).get_plan_supervisor(plan_id) == users["supervisor"]
    with pytest.raises(NotFound):
        BudgetPlanStore(db).get_plan_supervisor(plan_id + 100)


def test_administrators_exclude_deleted_users(db, users):
    assert BudgetPlanStore(db).list_administrator_ids() == {users["admin"], users["admin2"]}


def test_revision_tracks_blob_content():
    assert category_revision(None) == category_revision("")
    assert category_revision("[]") != category_revision("[{}]")


def test_plan_status_moves_forward_only(db, plan_id):
    store = BudgetPlanStore(db)

    with pytest.raises(InvalidStatus):
        store.update_plan_status(plan_id, "draft")
    with pytest.raises(InvalidStatus):
        store.update_plan_status(plan_id, "archived")

    assert store.update_plan_status(plan_id, "on_progress").status == "on_progress"
    assert store.update_plan_status(plan_id, "selesai").status == "selesai"
    assert store.list_open_plans() == []
