"""
Tests for QR code check-in artifacts.
"""

from io import BytesIO

import pytest
from PIL import Image

from checkin import EntryNotFound, QRArtifactGenerator
from checkin.artifacts import content_disposition_for, scan_url


def test_scan_url_uses_base_origin():
    assert scan_url("https://board.example", 7) == "https://board.example/scan/7"
    assert scan_url("http://localhost:3000/", 7) == "http://localhost:3000/scan/7"


async def test_generate_embeds_scan_url_and_name_caption(artifacts, entries):
    entry = await entries.create("Alice", privileged=True)

    artifact = await artifacts.generate(entry.id, "http://localhost:3000")

    assert artifact.url == f"http://localhost:3000/scan/{entry.id}"
    assert artifact.png.startswith(b"\x89PNG")
    with Image.open(BytesIO(artifact.png)) as img:
        # qr_size 200, name_height 40, padding 10
        assert img.size == (200, 250)


async def test_generate_is_deterministic(artifacts, entries):
    entry = await entries.create("Alice", privileged=True)

    first = await artifacts.generate(entry.id, "https://board.example")
    second = await artifacts.generate(entry.id, "https://board.example")

    assert first.url == second.url
    assert first.png == second.png


async def test_generate_follows_request_origin(artifacts, entries):
    entry = await entries.create("Alice", privileged=True)

    local = await artifacts.generate(entry.id, "http://localhost:3000")
    public = await artifacts.generate(entry.id, "https://board.example")

    assert local.url != public.url
    assert public.url.startswith("https://board.example/")


async def test_generate_missing_entry(artifacts):
    with pytest.raises(EntryNotFound):
        await artifacts.generate(9999, "http://localhost:3000")


async def test_code_only_when_name_disabled(make_config, entries):
    config = make_config({"artifact": {"qr_size": 120, "show_name": False}})
    generator = QRArtifactGenerator(entries, config)
    entry = await entries.create("Alice", privileged=True)

    artifact = await generator.generate(entry.id, "http://localhost")

    with Image.open(BytesIO(artifact.png)) as img:
        assert img.size == (120, 120)


def test_long_names_still_render(artifacts):
    png = artifacts.render_png("http://localhost/scan/1", "W" * 200)

    with Image.open(BytesIO(png)) as img:
        assert img.size == (200, 250)


def test_content_disposition_plain_name():
    filename, header = content_disposition_for("Alice")

    assert filename == "qr-Alice.png"
    assert header == "inline; filename=\"qr-Alice.png\"; filename*=UTF-8''qr-Alice.png"


def test_content_disposition_strips_header_breaking_characters():
    filename, header = content_disposition_for('Al"ice\r\nSet-Cookie: x;\\/')

    assert "\r" not in header and "\n" not in header
    assert header.count('"') == 2
    assert ";" not in filename and "\\" not in filename and "/" not in filename
    assert filename == "qr-AliceSet-Cookie_x.png"


def test_content_disposition_non_ascii_name():
    filename, header = content_disposition_for("Jörg Müller")

    assert filename == "qr-J_rg_M_ller.png"
    assert "filename*=UTF-8''qr-J%C3%B6rg%20M%C3%BCller.png" in header


def test_content_disposition_falls_back_for_empty_result():
    filename, _ = content_disposition_for('"""')

    assert filename == "qr-entry.png"
