"""Canvas tests — slugs, CRUD, duplication, block upserts, ownership, risk heatmap route."""

import os
import sys

# Ensure the backend package is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import uuid

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from rocketmap.constants import BLOCK_TYPES
from rocketmap.database import Base, get_db
from rocketmap.main import app
from rocketmap.services.auth_utils import create_access_token
from rocketmap.services.canvas_service import slugify

# ---------------------------------------------------------------------------
# Test database setup
# ---------------------------------------------------------------------------
TEST_DATABASE_URL = "sqlite:///./test_canvas.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

_user_counter = 0


def _next_username(prefix="canvasuser"):
    global _user_counter
    _user_counter += 1
    return f"{prefix}_{_user_counter}"


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


client = TestClient(app)


@pytest.fixture(autouse=True)
def setup_db():
    """Create tables before each test, drop after."""
    app.dependency_overrides[get_db] = override_get_db
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)
    app.dependency_overrides.pop(get_db, None)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _create_user():
    """Create a user directly in DB, return (user_id, token)."""
    from rocketmap.models.user import User

    db = TestingSessionLocal()
    uid = str(uuid.uuid4())
    uname = _next_username()
    db.add(User(id=uid, email=f"{uname}@test.com", username=uname))
    db.commit()
    db.close()
    return uid, create_access_token(uid, f"{uname}@test.com", uname)


def _auth(token):
    return {"Authorization": f"Bearer {token}"}


def _create_canvas(token, title="Ledger Sync", blocks=None):
    res = client.post("/canvas/", json={"title": title, "blocks": blocks or {}}, headers=_auth(token))
    assert res.status_code == 201, f"Canvas creation failed: {res.text}"
    return res.json()


# ===================================================================== #
#  Unit tests: slugify                                                   #
# ===================================================================== #

class TestSlugify:
    def test_basic(self):
        assert slugify("Ledger Sync for SMBs") == "ledger-sync-for-smbs"

    def test_strips_symbols_and_collapses_hyphens(self):
        assert slugify("  AI -- Powered!!  Widgets? ") == "ai-powered-widgets"

    def test_empty_falls_back(self):
        assert slugify("!!!") == "untitled-canvas"


# ===================================================================== #
#  Canvas CRUD                                                           #
# ===================================================================== #

class TestCanvasCrud:
    def test_create_returns_id_and_slug(self):
        _, token = _create_user()
        body = _create_canvas(token, title="Ledger Sync")
        assert body["slug"] == "ledger-sync"
        uuid.UUID(body["id"])

    def test_slug_collision_gets_suffix(self):
        _, token = _create_user()
        assert _create_canvas(token, title="Ledger Sync")["slug"] == "ledger-sync"
        assert _create_canvas(token, title="Ledger Sync")["slug"] == "ledger-sync-2"
        assert _create_canvas(token, title="Ledger  Sync!")["slug"] == "ledger-sync-3"

    def test_same_slug_allowed_for_different_owners(self):
        _, token_a = _create_user()
        _, token_b = _create_user()
        assert _create_canvas(token_a)["slug"] == "ledger-sync"
        assert _create_canvas(token_b)["slug"] == "ledger-sync"

    def test_blank_title_rejected(self):
        _, token = _create_user()
        res = client.post("/canvas/", json={"title": "   "}, headers=_auth(token))
        assert res.status_code == 422

    def test_unknown_block_type_rejected(self):
        _, token = _create_user()
        res = client.post(
            "/canvas/",
            json={"title": "X", "blocks": {"secret_sauce": {"content_bmc": "nope"}}},
            headers=_auth(token),
        )
        assert res.status_code == 422

    def test_get_canvas_blocks_in_canonical_order(self):
        _, token = _create_user()
        blocks = {bt: {"content_bmc": f"{bt} content"} for bt in reversed(BLOCK_TYPES)}
        canvas_id = _create_canvas(token, blocks=blocks)["id"]

        res = client.get(f"/canvas/{canvas_id}", headers=_auth(token))
        assert res.status_code == 200
        body = res.json()
        assert [b["block_type"] for b in body["blocks"]] == BLOCK_TYPES
        assert body["blocks"][0]["risk"]["risk_score"] == 0
        assert body["blocks"][0]["state"] == "neutral"
        assert body["viability"] is None
        assert body["is_public"] is False

    def test_list_only_own_canvases(self):
        _, token_a = _create_user()
        _, token_b = _create_user()
        _create_canvas(token_a, title="Mine")
        _create_canvas(token_b, title="Theirs")

        res = client.get("/canvas/", headers=_auth(token_a))
        assert res.status_code == 200
        titles = [c["title"] for c in res.json()["records"]]
        assert titles == ["Mine"]

    def test_patch_canvas(self):
        _, token = _create_user()
        canvas_id = _create_canvas(token)["id"]
        res = client.patch(
            f"/canvas/{canvas_id}",
            json={"title": "Renamed", "is_public": True},
            headers=_auth(token),
        )
        assert res.status_code == 200
        assert res.json()["title"] == "Renamed"
        assert res.json()["is_public"] is True
        # Slug is stable across renames
        assert res.json()["slug"] == "ledger-sync"

    def test_patch_blank_title_rejected(self):
        _, token = _create_user()
        canvas_id = _create_canvas(token)["id"]
        res = client.patch(f"/canvas/{canvas_id}", json={"title": "   "}, headers=_auth(token))
        assert res.status_code == 422
        assert client.get(f"/canvas/{canvas_id}", headers=_auth(token)).json()["title"] == "Ledger Sync"

    def test_delete_canvas(self):
        _, token = _create_user()
        canvas_id = _create_canvas(token)["id"]
        res = client.delete(f"/canvas/{canvas_id}", headers=_auth(token))
        assert res.status_code == 200
        assert client.get(f"/canvas/{canvas_id}", headers=_auth(token)).status_code == 404

    def test_duplicate_copies_blocks(self):
        _, token = _create_user()
        source = _create_canvas(token, blocks={"channels": {"content_bmc": "Direct sales"}})

        res = client.post(f"/canvas/{source['id']}/duplicate", headers=_auth(token))
        assert res.status_code == 201
        copy = res.json()
        assert copy["id"] != source["id"]
        assert copy["slug"] == "ledger-sync-copy"

        body = client.get(f"/canvas/{copy['id']}", headers=_auth(token)).json()
        assert body["title"] == "Ledger Sync (Copy)"
        assert [(b["block_type"], b["content_bmc"]) for b in body["blocks"]] == [("channels", "Direct sales")]

    def test_put_block_creates_then_updates(self):
        _, token = _create_user()
        canvas_id = _create_canvas(token)["id"]

        res = client.put(
            f"/canvas/{canvas_id}/blocks",
            json={"block_type": "value_prop", "content_bmc": "First draft"},
            headers=_auth(token),
        )
        assert res.status_code == 200
        block_id = res.json()["id"]

        res = client.put(
            f"/canvas/{canvas_id}/blocks",
            json={"block_type": "value_prop", "content_bmc": "Second draft", "content_lean": "Lean text"},
            headers=_auth(token),
        )
        assert res.status_code == 200
        assert res.json()["id"] == block_id
        assert res.json()["content_bmc"] == "Second draft"
        assert res.json()["content_lean"] == "Lean text"


# ===================================================================== #
#  Ownership / auth                                                      #
# ===================================================================== #

class TestCanvasAccess:
    def test_requires_auth(self):
        assert client.get("/canvas/").status_code == 401

    def test_invalid_token(self):
        res = client.get("/canvas/", headers=_auth("not-a-jwt"))
        assert res.status_code == 401

    def test_other_users_canvas_forbidden(self):
        _, owner = _create_user()
        _, intruder = _create_user()
        canvas_id = _create_canvas(owner)["id"]

        res = client.get(f"/canvas/{canvas_id}", headers=_auth(intruder))
        assert res.status_code == 403
        assert res.json()["detail"] == "Forbidden"
        assert client.delete(f"/canvas/{canvas_id}", headers=_auth(intruder)).status_code == 403

    def test_missing_canvas_404(self):
        _, token = _create_user()
        res = client.get(f"/canvas/{uuid.uuid4()}", headers=_auth(token))
        assert res.status_code == 404


# ===================================================================== #
#  Risk heatmap route                                                    #
# ===================================================================== #

class TestRiskHeatmapRoute:
    def test_heatmap_reflects_assumptions(self):
        _, token = _create_user()
        blocks = {bt: {"content_bmc": "Some content here"} for bt in BLOCK_TYPES}
        canvas_id = _create_canvas(token, blocks=blocks)["id"]

        for statement, level in [("Buyers pay monthly", "high"), ("Churn stays low", "medium")]:
            res = client.post(
                f"/canvas/{canvas_id}/assumptions/",
                json={"statement": statement, "risk_level": level, "block_types": ["revenue_streams"]},
                headers=_auth(token),
            )
            assert res.status_code == 201

        res = client.get(f"/canvas/{canvas_id}/risk-heatmap", headers=_auth(token))
        assert res.status_code == 200
        heatmap = res.json()
        assert set(heatmap.keys()) == set(BLOCK_TYPES)
        assert heatmap["revenue_streams"]["risk_score"] == 45
        assert heatmap["revenue_streams"]["untested_high_risk"] == 1
        assert heatmap["revenue_streams"]["top_risks"] == ["Buyers pay monthly"]
        assert heatmap["channels"]["risk_score"] == 0

        canvas = client.get(f"/canvas/{canvas_id}", headers=_auth(token)).json()
        states = {b["block_type"]: b["state"] for b in canvas["blocks"]}
        assert states["revenue_streams"] == "warning"
        assert states["channels"] == "neutral"

    def test_heatmap_forbidden_for_other_user(self):
        _, owner = _create_user()
        _, intruder = _create_user()
        canvas_id = _create_canvas(owner)["id"]
        assert client.get(f"/canvas/{canvas_id}/risk-heatmap", headers=_auth(intruder)).status_code == 403
