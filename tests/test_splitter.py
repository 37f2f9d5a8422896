"""
Unit tests for splitter.py
"""

import logging
from pathlib import Path
from unittest import mock

import pytest

from mysqldumper.errors import ConfigError, DumpIOError, DumpParseError
from mysqldumper.models import SplitMode
from mysqldumper.splitter import extract_name, split_dump_file

SCENARIO = (
    "-- dump preamble\n"
    "-- Current Database: `shop`\n"
    "DROP TABLE IF EXISTS `orders`;\n"
    "INSERT INTO orders VALUES (1);\n"
)

MULTI_DATABASE = (
    "-- MySQL dump 10.13\n"
    "/*!40101 SET NAMES utf8mb4 */;\n"
    "\n"
    "--\n"
    "-- Current Database: `shop`\n"
    "--\n"
    "\n"
    "CREATE DATABASE /*!32312 IF NOT EXISTS*/ `shop`;\n"
    "USE `shop`;\n"
    "DROP TABLE IF EXISTS `orders`;\n"
    "CREATE TABLE `orders` (`id` int);\n"
    "INSERT INTO `orders` VALUES (1);\n"
    "DROP TABLE IF EXISTS `customers`;\n"
    "CREATE TABLE `customers` (`id` int);\n"
    "\n"
    "--\n"
    "-- Current Database: `crm`\n"
    "--\n"
    "\n"
    "USE `crm`;\n"
    "DROP TABLE IF EXISTS `contacts`;\n"
    "CREATE TABLE `contacts` (`id` int);\n"
    "-- Dump completed\n"
)


def write_dump(path: Path, content: str | bytes) -> Path:
    if isinstance(content, str):
        content = content.encode()
    path.write_bytes(content)
    return path


def tree(root: Path) -> dict[str, bytes]:
    return {
        str(p.relative_to(root)): p.read_bytes()
        for p in sorted(root.rglob('*')) if p.is_file()
    }


class TestExtractName:
    """Tests for extract_name function."""

    def test_database_marker(self):
        assert extract_name(b"-- Current Database: `shop`\n", 1) == "shop"

    def test_uses_first_pair_of_backticks(self):
        line = b"DROP TABLE IF EXISTS `orders`; -- see `other`\n"
        assert extract_name(line, 1) == "orders"

    def test_missing_closing_backtick(self):
        with pytest.raises(DumpParseError) as exc_info:
            extract_name(b"-- Current Database: `incomplete\n", 7)
        assert exc_info.value.line_number == 7

    def test_no_backticks(self):
        with pytest.raises(DumpParseError):
            extract_name(b"DROP TABLE orders;\n", 1)

    def test_empty_name(self):
        with pytest.raises(DumpParseError):
            extract_name(b"DROP TABLE IF EXISTS ``;\n", 1)

    @pytest.mark.parametrize("name", ["..", ".", "a/b", "sh\x00op"])
    def test_name_must_be_single_path_component(self, name):
        with pytest.raises(DumpParseError):
            extract_name(f"DROP TABLE IF EXISTS `{name}`;\n".encode(), 1)

    def test_unicode_name(self):
        assert extract_name("DROP TABLE `café`;\n".encode(), 1) == "café"


class TestSplitScenarios:
    """Split output for small known dumps."""

    def test_per_table(self, tmp_path):
        """Preamble and database marker are dropped, table file gets the rest."""
        source = write_dump(tmp_path / "dump.sql", SCENARIO)

        root = split_dump_file(source, tmp_path, "1700000000", SplitMode.PER_DATABASE_AND_TABLE)

        assert root == tmp_path / "1700000000"
        assert tree(root) == {
            "shop/orders.sql": b"DROP TABLE IF EXISTS `orders`;\nINSERT INTO orders VALUES (1);\n",
        }

    def test_per_database(self, tmp_path):
        """Database file holds everything after its marker line."""
        source = write_dump(tmp_path / "dump.sql", SCENARIO)

        root = split_dump_file(source, tmp_path, "1700000000", SplitMode.PER_DATABASE)

        assert tree(root) == {
            "shop.sql": b"DROP TABLE IF EXISTS `orders`;\nINSERT INTO orders VALUES (1);\n",
        }

    def test_multi_database_per_database(self, tmp_path):
        source = write_dump(tmp_path / "dump.sql", MULTI_DATABASE)

        root = split_dump_file(source, tmp_path, 1, SplitMode.PER_DATABASE)

        files = tree(root)
        assert sorted(files) == ["crm.sql", "shop.sql"]
        assert files["shop.sql"].startswith(b"--\n\nCREATE DATABASE")
        assert b"`customers`" in files["shop.sql"]
        assert b"crm" not in files["shop.sql"]
        assert files["crm.sql"].endswith(b"-- Dump completed\n")

    def test_multi_database_per_table(self, tmp_path):
        """Tables nest under the most recent database marker."""
        source = write_dump(tmp_path / "dump.sql", MULTI_DATABASE)

        root = split_dump_file(source, tmp_path, 1, SplitMode.PER_DATABASE_AND_TABLE)

        files = tree(root)
        assert sorted(files) == ["crm/contacts.sql", "shop/customers.sql", "shop/orders.sql"]
        assert files["shop/orders.sql"] == (
            b"DROP TABLE IF EXISTS `orders`;\n"
            b"CREATE TABLE `orders` (`id` int);\n"
            b"INSERT INTO `orders` VALUES (1);\n"
        )
        # the crm marker closes the last shop table
        assert files["shop/customers.sql"] == (
            b"DROP TABLE IF EXISTS `customers`;\n"
            b"CREATE TABLE `customers` (`id` int);\n"
            b"\n"
            b"--\n"
        )
        assert files["crm/contacts.sql"].endswith(b"-- Dump completed\n")

    def test_table_dump_with_database_name(self, tmp_path):
        """Dumps without database markers use the given folder name."""
        content = (
            "/*!40101 SET NAMES utf8mb4 */;\n"
            "DROP TABLE IF EXISTS `orders`;\n"
            "CREATE TABLE `orders` (`id` int);\n"
            "DROP TABLE IF EXISTS `order_items`;\n"
            "CREATE TABLE `order_items` (`id` int);\n"
        )
        source = write_dump(tmp_path / "dump.sql", content)

        root = split_dump_file(
            source, tmp_path, 1, SplitMode.PER_DATABASE_AND_TABLE, database_name="shop"
        )

        assert sorted(tree(root)) == ["shop/order_items.sql", "shop/orders.sql"]

    def test_database_folder_created_eagerly(self, tmp_path):
        source = write_dump(tmp_path / "dump.sql", "-- nothing here\n")

        root = split_dump_file(
            source, tmp_path, 1, SplitMode.PER_DATABASE_AND_TABLE, database_name="shop"
        )

        assert (root / "shop").is_dir()

    def test_table_markers_ignored_per_database(self, tmp_path):
        source = write_dump(tmp_path / "dump.sql", MULTI_DATABASE)

        root = split_dump_file(source, tmp_path, 1, SplitMode.PER_DATABASE)

        assert not any(p.is_dir() for p in root.iterdir())


class TestSplitProperties:
    """Properties that hold for any well-formed dump."""

    def test_completeness_per_table(self, tmp_path):
        """Every line after the first table marker ends up in exactly one file."""
        source = write_dump(tmp_path / "dump.sql", SCENARIO)
        root = split_dump_file(source, tmp_path, 1, SplitMode.PER_DATABASE_AND_TABLE)

        joined = b"".join(tree(root).values())
        expected = SCENARIO.encode().split(b"DROP TABLE", 1)[1]
        assert joined == b"DROP TABLE" + expected

    def test_completeness_per_database(self, tmp_path):
        """Concatenated database files equal the dump minus preamble and marker lines."""
        source = write_dump(tmp_path / "dump.sql", MULTI_DATABASE)
        root = split_dump_file(source, tmp_path, 1, SplitMode.PER_DATABASE)

        expected_lines = MULTI_DATABASE.splitlines(keepends=True)
        first_marker = next(i for i, l in enumerate(expected_lines) if "Current Database:" in l)
        expected = [l for l in expected_lines[first_marker:] if "Current Database:" not in l]

        files = tree(root)
        # database sections appear in file order: shop then crm
        assert files["shop.sql"] + files["crm.sql"] == "".join(expected).encode()

    def test_identical_output_for_two_roots(self, tmp_path):
        first = write_dump(tmp_path / "a.sql", MULTI_DATABASE)
        second = write_dump(tmp_path / "b.sql", MULTI_DATABASE)
        (tmp_path / "one").mkdir()
        (tmp_path / "two").mkdir()

        root_one = split_dump_file(first, tmp_path / "one", 5, SplitMode.PER_DATABASE_AND_TABLE)
        root_two = split_dump_file(second, tmp_path / "two", 5, SplitMode.PER_DATABASE_AND_TABLE)

        assert tree(root_one) == tree(root_two)

    def test_lines_copied_verbatim(self, tmp_path):
        """Line endings and non-UTF-8 bytes are preserved."""
        content = (
            b"-- Current Database: `shop`\r\n"
            b"DROP TABLE IF EXISTS `blobs`;\r\n"
            b"INSERT INTO `blobs` VALUES ('\xff\xfe');\r\n"
            b"no trailing newline"
        )
        source = write_dump(tmp_path / "dump.sql", content)

        root = split_dump_file(source, tmp_path, 1, SplitMode.PER_DATABASE_AND_TABLE)

        assert (root / "shop" / "blobs.sql").read_bytes() == content.split(b"\r\n", 1)[1]

    def test_source_deleted_on_success(self, tmp_path):
        source = write_dump(tmp_path / "dump.sql", SCENARIO)

        split_dump_file(source, tmp_path, 1, SplitMode.PER_DATABASE)

        assert not source.exists()

    def test_no_markers_gives_empty_tree(self, tmp_path, caplog):
        caplog.set_level(logging.WARNING)
        source = write_dump(tmp_path / "dump.sql", "SELECT 1;\nSELECT 2;\n")

        root = split_dump_file(source, tmp_path, 1, SplitMode.PER_DATABASE)

        assert root.is_dir()
        assert list(root.iterdir()) == []
        assert not source.exists()
        assert "No split markers" in caplog.text


class TestSplitFailures:
    """Failures leave the source dump in place."""

    def test_malformed_database_marker(self, tmp_path):
        content = SCENARIO + "-- Current Database: `incomplete\nSELECT 1;\n"
        source = write_dump(tmp_path / "dump.sql", content)

        with pytest.raises(DumpParseError) as exc_info:
            split_dump_file(source, tmp_path, 1, SplitMode.PER_DATABASE)

        assert exc_info.value.line_number == 5
        assert source.exists()

    def test_malformed_table_marker(self, tmp_path):
        source = write_dump(tmp_path / "dump.sql", "-- Current Database: `shop`\nDROP TABLE orders;\n")

        with pytest.raises(DumpParseError):
            split_dump_file(source, tmp_path, 1, SplitMode.PER_DATABASE_AND_TABLE)

        assert source.exists()

    def test_table_before_any_database(self, tmp_path):
        source = write_dump(tmp_path / "dump.sql", "DROP TABLE IF EXISTS `orders`;\n")

        with pytest.raises(DumpParseError):
            split_dump_file(source, tmp_path, 1, SplitMode.PER_DATABASE_AND_TABLE)

        assert source.exists()

    def test_existing_target_folder(self, tmp_path):
        source = write_dump(tmp_path / "dump.sql", SCENARIO)
        (tmp_path / "1700000000").mkdir()

        with pytest.raises(DumpIOError):
            split_dump_file(source, tmp_path, "1700000000", SplitMode.PER_DATABASE)

        assert source.exists()

    def test_missing_source(self, tmp_path):
        with pytest.raises(DumpIOError):
            split_dump_file(tmp_path / "missing.sql", tmp_path, 1, SplitMode.PER_DATABASE)

    def test_write_failure_keeps_source(self, tmp_path):
        source = write_dump(tmp_path / "dump.sql", SCENARIO)
        real_open = open

        def failing_open(path, mode='r', *args, **kwargs):
            if 'w' in mode:
                raise PermissionError(13, "Permission denied", str(path))
            return real_open(path, mode, *args, **kwargs)

        with mock.patch('builtins.open', side_effect=failing_open):
            with pytest.raises(DumpIOError) as exc_info:
                split_dump_file(source, tmp_path, 1, SplitMode.PER_DATABASE)

        assert isinstance(exc_info.value.__cause__, PermissionError)
        assert source.exists()

    def test_null_byte_in_database_name(self, tmp_path):
        content = b"-- Current Database: `sh\x00op`\nSELECT 1;\n"
        source = write_dump(tmp_path / "dump.sql", content)

        with pytest.raises(DumpParseError) as exc_info:
            split_dump_file(source, tmp_path, 1, SplitMode.PER_DATABASE)

        assert exc_info.value.line_number == 1
        assert source.exists()

    @pytest.mark.parametrize("database_name", ["../../escaped", "..", "a/b", "sh\x00op", ""])
    def test_database_name_must_stay_inside_target(self, tmp_path, database_name):
        destination = tmp_path / "out"
        destination.mkdir()
        source = write_dump(tmp_path / "dump.sql", SCENARIO)

        with pytest.raises(ConfigError):
            split_dump_file(
                source, destination, 1, SplitMode.PER_DATABASE_AND_TABLE, database_name=database_name
            )

        assert source.exists()
        assert not (destination / "1").exists()
        assert not (tmp_path / "escaped").exists()

    def test_single_file_mode_rejected(self, tmp_path):
        source = write_dump(tmp_path / "dump.sql", SCENARIO)

        with pytest.raises(ConfigError):
            split_dump_file(source, tmp_path, 1, SplitMode.SINGLE_FILE)

        assert source.exists()
        assert not (tmp_path / "1").exists()
