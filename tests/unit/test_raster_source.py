"""
Unit tests for raster source adapters
"""

import asyncio
import logging
from unittest.mock import Mock, patch

import pytest
from botocore.exceptions import NoCredentialsError

from tileserver import errors, raster_source
from tileserver.config import build_config
from tileserver.errors import DecodeFailure, SourceUnavailable
from tileserver.raster_source import LocalRasterSource, S3RasterSource, s3_client, source_from_config


class TestS3RasterSource:
    """Test cases for S3RasterSource"""

    def test_locate_presigns_default_key(self):
        client = Mock()
        client.generate_presigned_url.return_value = "https://bucket.s3.amazonaws.com/output_cog.tif?X-Amz-Signature=abc"
        src = S3RasterSource("cog-tesing", default_key="output_cog.tif", expires_in=3600, client=client)

        url = asyncio.run(src.locate())

        assert url.startswith("https://")
        client.generate_presigned_url.assert_called_once_with(
            "get_object",
            Params={"Bucket": "cog-tesing", "Key": "output_cog.tif"},
            ExpiresIn=3600,
        )

    def test_locate_explicit_key(self):
        client = Mock()
        client.generate_presigned_url.return_value = "https://signed"
        src = S3RasterSource("b", default_key="default.tif", client=client)
        asyncio.run(src.locate("other.tif"))
        assert client.generate_presigned_url.call_args.kwargs["Params"]["Key"] == "other.tif"

    def test_signing_failure(self):
        """Credential problems surface as SourceUnavailable with the cause chained"""
        client = Mock()
        client.generate_presigned_url.side_effect = NoCredentialsError()
        src = S3RasterSource("b", default_key="k.tif", client=client)
        with pytest.raises(SourceUnavailable) as ei:
            asyncio.run(src.locate())
        assert isinstance(ei.value.__cause__, NoCredentialsError)
        assert ei.value.client_error is False

    def test_bucket_required(self):
        with pytest.raises(ValueError):
            S3RasterSource("", default_key="k.tif")

    def test_shared_client_is_lazy_and_cached(self):
        """One boto3 client per region, created on first use"""
        s3_client.cache_clear()
        with patch("tileserver.raster_source.boto3.client") as mk:
            mk.return_value = Mock()
            src = S3RasterSource("b", default_key="k.tif", region="eu-west-1")
            mk.assert_not_called()
            first = src.client
            second = S3RasterSource("b2", default_key="k.tif", region="eu-west-1").client
            assert first is second
            mk.assert_called_once_with("s3", region_name="eu-west-1")
        s3_client.cache_clear()


class TestLocalRasterSource:
    """Test cases for LocalRasterSource"""

    def test_locate_default(self, constant_raster):
        src = LocalRasterSource(str(constant_raster))
        assert asyncio.run(src.locate()) == str(constant_raster)
        assert src.default_id == constant_raster.name

    def test_sibling_file(self, constant_raster, single_band_raster):
        src = LocalRasterSource(str(constant_raster))
        assert asyncio.run(src.locate(single_band_raster.name)) == str(single_band_raster)

    def test_missing(self, tmp_path):
        src = LocalRasterSource(str(tmp_path / "missing.tif"))
        with pytest.raises(DecodeFailure):
            asyncio.run(src.locate())

    def test_rejects_paths(self, constant_raster):
        src = LocalRasterSource(str(constant_raster))
        with pytest.raises(DecodeFailure):
            asyncio.run(src.locate("../etc/passwd"))


class TestSourceFromConfig:
    def test_file(self):
        src = source_from_config(build_config({"source": {"kind": "file", "path": "data/x.tif"}}).source)
        assert isinstance(src, LocalRasterSource)

    def test_s3(self):
        src = source_from_config(build_config({"source": {"bucket": "bkt", "key": "k.tif", "region": "us-west-2"}}).source)
        assert isinstance(src, S3RasterSource)
        assert (src.bucket, src.default_id, src.region) == ("bkt", "k.tif", "us-west-2")


class TestModuleSetup:
    """Module docstrings and loggers follow the package conventions"""

    @pytest.mark.parametrize(
        "module,prefix",
        [(raster_source, "Raster source adapters"), (errors, "Failure taxonomy")],
    )
    def test_module_docstring(self, module, prefix):
        assert module.__doc__ is not None
        assert module.__doc__.strip().startswith(prefix)

    def test_logger_from_logging_setup(self):
        assert raster_source.log.name == "tileserver.raster_source"
        assert getattr(logging.getLogger(), "_tileserver_configured", False)
