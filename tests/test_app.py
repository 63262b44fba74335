import io
import struct

import pytest

from swatch_editor import ase_codec
from swatch_editor.app import create_app
from swatch_editor.palette import RGB, PaletteDocument, PaletteEntry, PaletteGroup


@pytest.fixture()
def palette_path(tmp_path):
    path = tmp_path / "colors.ase"
    document = PaletteDocument(
        items=[
            PaletteEntry("Red", RGB(1.0, 0.0, 0.0)),
            PaletteGroup("Warm", [PaletteEntry("Orange", RGB(1.0, 0.5, 0.0))]),
        ]
    )
    ase_codec.save(document, path)
    return path


@pytest.fixture()
def client(palette_path, monkeypatch):
    monkeypatch.delenv("SWATCH_FILE", raising=False)
    app = create_app(palette_path)
    app.config["TESTING"] = True
    return app.test_client()


def test_health_has_trace_id(client) -> None:
    response = client.get("/api/health")
    assert response.status_code == 200
    body = response.get_json()
    assert body["status"] == "ok"
    assert response.headers["X-Trace-Id"] == body["trace_id"]


def test_get_palette(client, palette_path) -> None:
    body = client.get("/api/palette").get_json()
    assert body["path"] == str(palette_path)
    assert [item["name"] for item in body["items"]] == ["Red", "Warm"]


def test_add_and_edit_entry(client) -> None:
    response = client.post("/api/palette/items", json={"name": "Blue", "color": "#0000FF"})
    assert response.status_code == 200
    assert response.get_json()["items"][-1]["color"]["hex"] == "#0000FF"

    response = client.patch(
        "/api/palette/items/2",
        json={"name": "Navy", "usage": "global", "color": {"model": "CMYK", "values": [1, 1, 0, 0.5]}},
    )
    item = response.get_json()["items"][2]
    assert item["name"] == "Navy"
    assert item["usage"] == "global"
    assert item["color"]["model"] == "CMYK"


def test_group_and_ungroup(client) -> None:
    body = client.post("/api/palette/items/0/group", json={"group": 1, "position": 0}).get_json()
    assert [item["name"] for item in body["items"]] == ["Warm"]
    assert [entry["name"] for entry in body["items"][0]["entries"]] == ["Red", "Orange"]

    body = client.post("/api/palette/groups/0/entries/1/ungroup", json={}).get_json()
    assert [item["name"] for item in body["items"]] == ["Warm", "Orange"]


def test_group_entry_crud(client) -> None:
    body = client.post("/api/palette/groups/1/entries", json={"name": "Yellow", "color": "#FF0"}).get_json()
    assert [entry["name"] for entry in body["items"][1]["entries"]] == ["Orange", "Yellow"]

    body = client.post("/api/palette/groups/1/entries/1/move", json={"to": 0}).get_json()
    assert [entry["name"] for entry in body["items"][1]["entries"]] == ["Yellow", "Orange"]

    body = client.patch("/api/palette/groups/1/entries/0", json={"name": "Lemon"}).get_json()
    assert body["items"][1]["entries"][0]["name"] == "Lemon"

    body = client.delete("/api/palette/groups/1/entries/0").get_json()
    assert [entry["name"] for entry in body["items"][1]["entries"]] == ["Orange"]


def test_add_group_and_move(client) -> None:
    client.post("/api/palette/items", json={"kind": "group", "name": "Cool", "entries": [{"name": "Ice"}]})
    body = client.post("/api/palette/items/2/move", json={"to": 0}).get_json()
    assert [item["name"] for item in body["items"]] == ["Cool", "Red", "Warm"]


def test_edit_errors(client) -> None:
    assert client.delete("/api/palette/items/9").status_code == 404
    assert client.patch("/api/palette/items/1", json={"color": "#FFF"}).status_code == 400
    assert client.post("/api/palette/items/0/move", json={}).status_code == 400
    assert client.post("/api/palette/items", json={"kind": "folder"}).status_code == 400
    response = client.patch("/api/palette/items/0", json={"color": "#XYZ"})
    assert response.status_code == 400
    assert response.get_json()["error_code"] == "ValueError"


def test_save_round_trip(client, palette_path) -> None:
    client.patch("/api/palette/items/0", json={"name": "Crimson"})
    response = client.post("/api/palette/save", json={})
    assert response.status_code == 200
    assert response.get_json()["saved_to"] == str(palette_path)
    assert ase_codec.load(palette_path).items[0].name == "Crimson"


def test_open_rejects_bad_file(client, tmp_path) -> None:
    broken = tmp_path / "broken.ase"
    broken.write_bytes(b"\x00" * 16)
    response = client.post("/api/palette/open", json={"path": str(broken)})
    assert response.status_code == 422
    assert response.get_json()["error_code"] == "BadSignature"

    response = client.post("/api/palette/open", json={"path": str(tmp_path / "nope.ase")})
    assert response.status_code == 404


def test_import_and_export(client) -> None:
    data = ase_codec.encode(PaletteDocument(items=[PaletteEntry("Uploaded", RGB(0.0, 1.0, 0.0))]))
    response = client.post(
        "/api/palette/import",
        data={"file": (io.BytesIO(data), "upload.ase")},
        content_type="multipart/form-data",
    )
    assert response.status_code == 200
    assert [item["name"] for item in response.get_json()["items"]] == ["Uploaded"]

    exported = client.get("/api/palette/export")
    assert exported.status_code == 200
    assert exported.data == data


def test_import_rejects_truncated_upload(client) -> None:
    data = ase_codec.encode(PaletteDocument(items=[PaletteEntry("Cut", RGB(0.0, 1.0, 0.0))]))
    response = client.post(
        "/api/palette/import",
        data={"file": (io.BytesIO(data[:-3]), "cut.ase")},
        content_type="multipart/form-data",
    )
    assert response.status_code == 422
    assert response.get_json()["error_code"] == "UnexpectedEnd"
    # The open palette is left untouched.
    assert len(client.get("/api/palette").get_json()["items"]) == 2


def test_preview_png(client) -> None:
    response = client.get("/api/palette/preview.png?tile=20&columns=2")
    assert response.status_code == 200
    assert response.mimetype == "image/png"
    assert response.data.startswith(b"\x89PNG")


def test_new_palette(client) -> None:
    body = client.post("/api/palette/new").get_json()
    assert body["items"] == []
    assert body["path"] is None
    assert client.post("/api/palette/save", json={}).status_code == 400


def test_startup_reads_env(tmp_path, palette_path, monkeypatch) -> None:
    monkeypatch.setenv("SWATCH_FILE", str(palette_path))
    app = create_app()
    body = app.test_client().get("/api/palette").get_json()
    assert body["color_count"] == 2


def _upload(client, data: bytes, name: str = "upload.ase"):
    return client.post(
        "/api/palette/import",
        data={"file": (io.BytesIO(data), name)},
        content_type="multipart/form-data",
    )


def test_import_non_finite_channels_keeps_palette_usable(client) -> None:
    name = "Odd\x00".encode("utf-16-be")
    body = b"".join(
        [
            (len(name) // 2).to_bytes(2, "big"),
            name,
            b"RGB ",
            struct.pack(">fff", float("nan"), float("inf"), float("-inf")),
            (2).to_bytes(2, "big"),
        ]
    )
    data = b"ASEF" + struct.pack(">HHI", 1, 0, 1) + struct.pack(">HI", 0x0001, len(body)) + body

    response = _upload(client, data)
    assert response.status_code == 200

    palette = client.get("/api/palette")
    assert palette.status_code == 200
    color = palette.get_json()["items"][0]["color"]
    assert color["values"] == [None, None, None]
    assert color["hex"] == "#00FF00"
    assert client.get("/api/palette/preview.png").status_code == 200

    exported = client.get("/api/palette/export")
    assert exported.status_code == 200
    assert exported.data == data


def test_unencodable_channels_are_rejected(client) -> None:
    response = client.post(
        "/api/palette/items", json={"name": "Huge", "color": {"model": "RGB", "values": [1e40, 0, 0]}}
    )
    assert response.status_code == 400
    response = client.patch("/api/palette/items/0", json={"color": {"model": "Gray", "values": [-1e39]}})
    assert response.status_code == 400

    assert client.get("/api/palette").get_json()["color_count"] == 2
    assert client.get("/api/palette/export").status_code == 200
    assert client.post("/api/palette/save", json={}).status_code == 200


def test_overlong_names_are_rejected(client) -> None:
    assert client.patch("/api/palette/items/0", json={"name": "a" * 65535}).status_code == 400
    assert client.patch("/api/palette/items/1", json={"name": "b" * 65535}).status_code == 400
    assert client.post("/api/palette/items", json={"kind": "group", "name": "c" * 65535}).status_code == 400
    assert client.post("/api/palette/items", json={"name": "d" * 65535}).status_code == 400

    assert client.patch("/api/palette/items/0", json={"name": "a" * 65534}).status_code == 200
    assert client.get("/api/palette/export").status_code == 200


def test_rejected_patch_changes_nothing(client) -> None:
    response = client.patch("/api/palette/items/0", json={"color": "#0000FF", "name": "x" * 65535})
    assert response.status_code == 400
    item = client.get("/api/palette").get_json()["items"][0]
    assert item["name"] == "Red"
    assert item["color"]["hex"] == "#FF0000"


def test_export_reports_unencodable_decoded_name(client) -> None:
    # A full-length name without its null decodes, but cannot be written back.
    name = ("n" * 0xFFFF).encode("utf-16-be")
    body = (0xFFFF).to_bytes(2, "big") + name + b"Gray" + struct.pack(">f", 0.5) + (2).to_bytes(2, "big")
    data = b"ASEF" + struct.pack(">HHI", 1, 0, 1) + struct.pack(">HI", 0x0001, len(body)) + body
    assert _upload(client, data).status_code == 200

    response = client.get("/api/palette/export")
    assert response.status_code == 400
    assert response.get_json()["error_code"] == "ValueError"
    assert client.post("/api/palette/save", json={}).status_code == 400
