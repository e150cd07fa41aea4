"""
Unit test file.
"""

import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from s3_multipart_copy import Config, S3Provider
from s3_multipart_copy.config import find_conf_file
from s3_multipart_copy.util import collapse_runs, split_s3_path

_CONFIG_TEXT = """
# remotes
[dst]
type = s3
provider = AWS
access_key_id = AKIAEXAMPLE
secret_access_key = secret=with=equals
region = us-east-1

[b2remote]
type = b2
account = b2account
key = b2key
endpoint = s3.us-west-002.backblazeb2.com

[local]
type = local
"""


class ConfigTester(unittest.TestCase):
    """Test rclone config parsing and credential lookup."""

    def test_parse_sections(self) -> None:
        parsed = Config(_CONFIG_TEXT).parse()
        self.assertEqual(set(parsed.sections), {"dst", "b2remote", "local"})
        dst = parsed.sections["dst"]
        self.assertEqual(dst.type(), "s3")
        self.assertEqual(dst.secret_access_key(), "secret=with=equals")

    def test_s3_credentials(self) -> None:
        creds = Config(_CONFIG_TEXT).section("dst").s3_credentials()
        self.assertEqual(creds.provider, S3Provider.S3)
        self.assertEqual(creds.access_key_id, "AKIAEXAMPLE")
        self.assertEqual(creds.region_name, "us-east-1")
        self.assertIsNone(creds.endpoint_url)

    def test_b2_credentials(self) -> None:
        creds = Config(_CONFIG_TEXT).section("b2remote").s3_credentials()
        self.assertEqual(creds.provider, S3Provider.BACKBLAZE)
        self.assertEqual(creds.access_key_id, "b2account")
        self.assertEqual(creds.secret_access_key, "b2key")
        self.assertEqual(creds.endpoint_url, "s3.us-west-002.backblazeb2.com")

    def test_non_s3_remote(self) -> None:
        with self.assertRaises(ValueError):
            Config(_CONFIG_TEXT).section("local").s3_credentials()

    def test_missing_remote(self) -> None:
        with self.assertRaises(ValueError):
            Config(_CONFIG_TEXT).section("nope")

    def test_json_config(self) -> None:
        config = Config({"dst": {"type": "s3", "access_key_id": "a", "secret_access_key": "b"}})
        self.assertEqual(config.section("dst").access_key_id(), "a")

    def test_find_conf_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "custom.conf"
            with mock.patch.dict(os.environ, {"RCLONE_CONFIG": str(path)}):
                self.assertEqual(find_conf_file(), path)


class UtilTester(unittest.TestCase):
    """Test path splitting and run collapsing."""

    def test_split_s3_path(self) -> None:
        info = split_s3_path("dst:bucket/dir/big file.bin")
        self.assertEqual(info.remote, "dst")
        self.assertEqual(info.bucket, "bucket")
        self.assertEqual(info.key, "dir/big file.bin")

    def test_split_s3_path_invalid(self) -> None:
        with self.assertRaises(ValueError):
            split_s3_path("bucket/key")
        with self.assertRaises(ValueError):
            split_s3_path("dst:bucket")

    def test_collapse_runs(self) -> None:
        self.assertEqual(collapse_runs([]), [])
        self.assertEqual(collapse_runs([1, 2, 3, 5, 7, 8]), ["1-3", "5", "7-8"])


if __name__ == "__main__":
    unittest.main()
