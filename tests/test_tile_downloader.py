"""
Tests for the command-line entry point
"""

import json
import os

import pytest

from geo_tile_downloader.exceptions.tile_downloader_exceptions import NetworkError
from geo_tile_downloader.services.http_fetch_service import HttpTileFetcher
from geo_tile_downloader.tile_downloader import main


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({
        "TileCacheFolder": str(tmp_path / "cache"),
        "TileMaps": [{"Name": "T", "Url": "https://t.example.com/{z}/{x}/{y}.png", "Format": "png"}],
        "Concurrency": 2,
    }), encoding="utf-8")
    return str(path)


@pytest.fixture
def fake_network(monkeypatch):
    """Replace real HTTP with a counter that can fail the first attempt per URL"""
    state = {"calls": [], "fail_first": set()}

    def fake_fetch(self, url, timeout, headers=None):
        state["calls"].append(url)
        if url in state["fail_first"]:
            state["fail_first"].discard(url)
            raise NetworkError(f"HTTP 502 for {url}")
        return b"tile"

    monkeypatch.setattr(HttpTileFetcher, "fetch", fake_fetch)
    return state


def test_list_tilemaps(config_path, capsys):
    assert main(["--config", config_path, "list-tilemaps"]) == 0

    assert "T: https://t.example.com/{z}/{x}/{y}.png" in capsys.readouterr().out


def test_download_bbox(config_path, tmp_path, fake_network, capsys):
    code = main(["--config", config_path, "download-bbox", "--tilemap", "T",
                 "--bbox=-74.01,40.70,-73.96,40.75", "--min-zoom", "0", "--max-zoom", "2"])

    assert code == 0
    assert len(fake_network["calls"]) == 3
    assert os.path.exists(tmp_path / "cache" / "T" / "T_00_00000000_00000000.png")
    out = capsys.readouterr().out
    assert "Download Statistics:" in out
    assert "Progress: [" in out


def test_failed_tiles_are_retried(config_path, fake_network, capsys):
    fake_network["fail_first"].add("https://t.example.com/0/0/0.png")

    code = main(["--config", config_path, "download-bbox", "--tilemap", "T",
                 "--bbox=-74.01,40.70,-73.96,40.75", "--min-zoom", "0", "--max-zoom", "0"])

    assert code == 0
    assert fake_network["calls"] == ["https://t.example.com/0/0/0.png"] * 2
    assert "Retry Statistics:" in capsys.readouterr().out


def test_no_retries_leaves_failure(config_path, fake_network):
    fake_network["fail_first"].add("https://t.example.com/0/0/0.png")

    code = main(["--config", config_path, "download-bbox", "--tilemap", "T",
                 "--bbox=-74.01,40.70,-73.96,40.75", "--min-zoom", "0", "--max-zoom", "0",
                 "--retries", "0"])

    assert code == 1


def test_download_geojson(config_path, tmp_path, fake_network):
    geojson_path = tmp_path / "area.geojson"
    geojson_path.write_text(json.dumps({
        "type": "Feature",
        "properties": {"name": "Sample Area"},
        "geometry": {"type": "Polygon", "coordinates": [[
            [-74.01, 40.70], [-74.01, 40.75], [-73.96, 40.75], [-73.96, 40.70], [-74.01, 40.70],
        ]]},
    }), encoding="utf-8")

    code = main(["--config", config_path, "download-geojson", "--tilemap", "T",
                 "--geojson", str(geojson_path), "--min-zoom", "0", "--max-zoom", "1"])

    assert code == 0
    assert len(fake_network["calls"]) == 2


@pytest.mark.parametrize("args", [
    ["download-bbox", "--tilemap", "Missing", "--bbox=-74.01,40.70,-73.96,40.75"],
    ["download-bbox", "--tilemap", "T", "--bbox=1,2,3"],
    ["download-geojson", "--tilemap", "T", "--geojson", "does-not-exist.geojson"],
])
def test_errors_exit_with_status_one(config_path, fake_network, args, capsys):
    assert main(["--config", config_path] + args) == 1

    assert "Error:" in capsys.readouterr().out
    assert fake_network["calls"] == []


def test_missing_config(tmp_path, capsys):
    assert main(["--config", str(tmp_path / "nope.json"), "list-tilemaps"]) == 1
