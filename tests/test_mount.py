"""Tests for mount info processing."""

import base64
import json

import pytest

from jobplane.errors import ValidationError
from jobplane.schemas import FSCacheConfig, process_mount_info


def _b64(data) -> str:
    return base64.b64encode(json.dumps(data).encode()).decode()


FS_RECORD = _b64({"id": "fs-alice-home", "type": "s3", "serverAddress": "s3.local"})


class TestProcessMountInfo:

    def test_decodes_cache_config(self):
        cache = _b64({"fsID": "fs-alice-home", "cacheDir": "/var/cache", "metaDriver": "redis", "blockSize": 4096})
        info = process_mount_info("fs-alice-home", "pod-1", FS_RECORD, cache, read_only=False)

        assert info.fs_cache_config == FSCacheConfig(
            fs_id="fs-alice-home", cache_dir="/var/cache", meta_driver="redis", block_size=4096,
        )
        assert info.server == "pod-1"
        assert info.mount_mode == "rw"

    def test_filesystem_record_passed_through(self):
        info = process_mount_info("fs-alice-home", "pod-1", FS_RECORD, "", read_only=True)
        assert info.fs_base64_str == FS_RECORD
        assert info.mount_mode == "ro"

    def test_empty_cache_yields_defaults(self):
        info = process_mount_info("fs-alice-home", "pod-1", FS_RECORD, "", read_only=False)
        assert info.fs_cache_config == FSCacheConfig(fs_id="fs-alice-home")

    def test_snake_case_cache_keys(self):
        cache = _b64({"fs_id": "fs-x", "cache_dir": "/c", "block_size": "512"})
        info = process_mount_info("fs-x", "pod-1", FS_RECORD, cache, read_only=False)
        assert info.fs_cache_config.cache_dir == "/c"
        assert info.fs_cache_config.block_size == 512

    @pytest.mark.parametrize("fs_record, cache", [
        ("not base64!", ""),
        (base64.b64encode(b"{not json").decode(), ""),
        (FS_RECORD, "%%%"),
        (FS_RECORD, _b64(["a", "list"])),
        (FS_RECORD, _b64({"fsID": "fs-x", "blockSize": "big"})),
    ])
    def test_invalid_payloads(self, fs_record, cache):
        with pytest.raises(ValidationError):
            process_mount_info("fs-x", "pod-1", fs_record, cache, read_only=False)
