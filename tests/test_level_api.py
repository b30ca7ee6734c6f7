import pytest

from pipeworks.models.level_instance import LevelInstance
from pipeworks.routes.level_api import _coerce_seed, get_cached_level


def _generate(client, **body):
    r = client.post("/api/level/generate", json=body)
    assert r.status_code == 200, r.get_json()
    return r.get_json()


def test_generate_returns_scrambled_state(client, fresh_db):
    data = _generate(client, width=6, height=5, difficulty=3, seed=42)
    assert data["width"] == 6 and data["height"] == 5
    assert data["seed"] == 42
    assert len(data["tiles"]) == 30
    assert data["moves"] == 0
    assert data["water_count"] == len(data["water"])
    assert data["start"] in data["water"]
    assert data["max_fillable_tiles"] > 0
    assert LevelInstance.query.count() == 1


def test_generate_defaults_from_app_config(client, fresh_db, test_app):
    data = _generate(client, seed=7)
    assert data["width"] == test_app.config["PIPEWORKS_DEFAULT_WIDTH"]
    assert data["height"] == test_app.config["PIPEWORKS_DEFAULT_HEIGHT"]


def test_same_seed_same_board(client, fresh_db):
    a = _generate(client, width=6, height=6, difficulty=5, seed="alpha")
    b = _generate(client, width=6, height=6, difficulty=5, seed="alpha")
    assert a["id"] != b["id"]
    assert a["tiles"] == b["tiles"]


@pytest.mark.parametrize(
    "body",
    [
        {"width": 3, "height": 8},
        {"width": "wide"},
        {"difficulty": True},
        {"seed": 1.5},
        {"seed": False},
    ],
)
def test_generate_rejects_bad_input(client, body):
    r = client.post("/api/level/generate", json=body)
    assert r.status_code == 400
    assert "error" in r.get_json()


def test_get_level_round_trip(client, fresh_db):
    created = _generate(client, width=5, height=5, seed=11)
    r = client.get(f"/api/level/{created['id']}")
    assert r.status_code == 200
    assert r.get_json()["tiles"] == created["tiles"]


def test_unknown_level_is_404(client, fresh_db):
    assert client.get("/api/level/999").status_code == 404
    assert client.post("/api/level/999/rotate", json={"x": 0, "y": 0}).status_code == 404
    assert client.get("/api/level/999/solution").status_code == 404


def test_rotate_validation(client, fresh_db):
    created = _generate(client, width=5, height=5, seed=11)
    url = f"/api/level/{created['id']}/rotate"
    assert client.post(url, json={"x": 1}).status_code == 400
    assert client.post(url, json={"x": "a", "y": 0}).status_code == 400
    assert client.post(url, json={"x": 5, "y": 0}).status_code == 400
    assert client.post(url, json={"x": -1, "y": 0}).status_code == 400


def test_rotate_turns_one_tile(client, fresh_db):
    created = _generate(client, width=5, height=5, seed=11)
    before = {(t["x"], t["y"]): t["rotation"] for t in created["tiles"]}
    r = client.post(f"/api/level/{created['id']}/rotate", json={"x": 2, "y": 2})
    assert r.status_code == 200
    data = r.get_json()
    after = {(t["x"], t["y"]): t["rotation"] for t in data["tiles"]}
    assert after[(2, 2)] == (before[(2, 2)] + 1) % 4
    assert {c: v for c, v in after.items() if c != (2, 2)} == {c: v for c, v in before.items() if c != (2, 2)}
    assert data["moves"] == 1


def test_applying_solution_completes_level(client, fresh_db):
    created = _generate(client, width=5, height=5, difficulty=2, seed=31)
    level_id = created["id"]
    sol = client.get(f"/api/level/{level_id}/solution").get_json()
    assert sol["max_fillable_tiles"] == created["max_fillable_tiles"]
    assert sol["path"][0] == created["start"]
    assert sol["path"][-1] == created["end"]

    current = {(t["x"], t["y"]): t["rotation"] for t in created["tiles"]}
    data = created
    for x, y, target in sol["rotations"]:
        for _ in range((target - current[(x, y)]) % 4):
            data = client.post(f"/api/level/{level_id}/rotate", json={"x": x, "y": y}).get_json()
    assert data["completed"] is True
    assert data["water_count"] >= data["max_fillable_tiles"]
    assert data["end"] in data["water"]


def test_coerce_seed_variants():
    assert _coerce_seed(5) == 5
    assert _coerce_seed(" 12 ") == 12
    assert _coerce_seed("abc") == _coerce_seed("abc")
    assert isinstance(_coerce_seed(None), int)
    with pytest.raises(ValueError):
        _coerce_seed(True)


def test_level_cache_reuses_instances(fresh_db):
    first = get_cached_level(5, 6, 6, 4)
    assert get_cached_level(5, 6, 6, 4) is first


def test_cache_can_be_disabled(monkeypatch, fresh_db):
    monkeypatch.setenv("PIPEWORKS_DISABLE_CACHE", "1")
    assert get_cached_level(5, 6, 6, 4) is not get_cached_level(5, 6, 6, 4)


def test_generate_rejects_oversized_grid(client, fresh_db, test_app):
    limit = test_app.config["PIPEWORKS_MAX_SIZE"]
    r = client.post("/api/level/generate", json={"width": limit + 1, "height": 6})
    assert r.status_code == 400
    assert f"at most {limit}x{limit}" in r.get_json()["error"]
    r = client.post("/api/level/generate", json={"width": 6, "height": 150, "difficulty": 10})
    assert r.status_code == 400
    assert LevelInstance.query.count() == 0


def test_max_size_follows_app_config(client, fresh_db, test_app, monkeypatch):
    monkeypatch.setitem(test_app.config, "PIPEWORKS_MAX_SIZE", 6)
    assert client.post("/api/level/generate", json={"width": 7, "height": 6, "seed": 1}).status_code == 400
    assert client.post("/api/level/generate", json={"width": 6, "height": 6, "seed": 1}).status_code == 200
