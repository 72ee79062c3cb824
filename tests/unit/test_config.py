"""
Unit tests for YAML configuration loading
"""

import pytest
import yaml

from common.geo import WEB_MERCATOR_HALF_EXTENT
from tileserver.config import build_config, load_config


class TestBuildConfig:
    """Test cases for build_config"""

    def test_defaults(self):
        cfg = build_config({})
        assert cfg.tiles.tile_size == 256
        assert cfg.tiles.half_extent == WEB_MERCATOR_HALF_EXTENT
        assert cfg.tiles.format == "png"
        assert cfg.source.kind == "s3"
        assert cfg.source.region == "us-east-1"
        assert cfg.source.expires_in == 3600
        assert cfg.source.bands == (1, 2, 3)
        assert cfg.source.rescale is None
        assert cfg.server.cors_origins == ("*",)
        assert cfg.log_level == "INFO"

    def test_coercion(self):
        cfg = build_config(
            {
                "tiles": {"tile_size": "512", "format": "JPG", "max_zoom": "20"},
                "source": {"kind": "file", "path": "x.tif", "bands": [3, 2, 1], "rescale": ["0", "4095"]},
                "server": {"port": "9000", "cors_origins": ["http://localhost:3000"]},
                "logging": {"level": "debug"},
            }
        )
        assert cfg.tiles.tile_size == 512
        assert cfg.tiles.format == "jpeg"
        assert cfg.tiles.max_zoom == 20
        assert cfg.source.bands == (3, 2, 1)
        assert cfg.source.rescale == (0.0, 4095.0)
        assert cfg.server.port == 9000
        assert cfg.server.cors_origins == ("http://localhost:3000",)
        assert cfg.log_level == "DEBUG"

    @pytest.mark.parametrize(
        "payload",
        [
            {"tiles": {"format": "gif"}},
            {"tiles": {"tile_size": 0}},
            {"tiles": ["tile_size"]},
            {"source": {"kind": "ftp"}},
            {"source": {"kind": "file"}},
            {"source": {"rescale": [10]}},
            {"source": {"rescale": [10, 5]}},
            {"source": {"bands": [0, 1, 2]}},
            {"tiles": {"tilesize": 256}},
            {"source": {"kind": "file", "path": "x.tif", "bucket_name": "b"}},
            {"server": {"listen": "0.0.0.0"}},
        ],
    )
    def test_invalid(self, payload):
        with pytest.raises(ValueError):
            build_config(payload)


class TestLoadConfig:
    """Test cases for load_config"""

    def test_missing_file_gives_defaults(self, tmp_path):
        cfg = load_config(str(tmp_path / "nope.yaml"))
        assert cfg == build_config({})

    def test_yaml_file(self, tmp_path):
        p = tmp_path / "params.yaml"
        p.write_text(yaml.safe_dump({"source": {"bucket": "tiles-bucket", "key": "a/b.tif"}}))
        cfg = load_config(str(p))
        assert cfg.source.bucket == "tiles-bucket"
        assert cfg.source.key == "a/b.tif"

    def test_env_override(self, tmp_path, monkeypatch):
        p = tmp_path / "env.yaml"
        p.write_text(yaml.safe_dump({"tiles": {"max_zoom": 12}}))
        monkeypatch.setenv("TILESERVER_CONFIG", str(p))
        assert load_config().tiles.max_zoom == 12

    def test_non_mapping_file(self, tmp_path):
        p = tmp_path / "bad.yaml"
        p.write_text("- 1\n- 2\n")
        with pytest.raises(ValueError):
            load_config(str(p))
