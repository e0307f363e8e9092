"""Tests for manifest loading."""

import pytest

from pgsample.manifest import Manifest, ManifestError, load_manifest
from pgsample.models import SpecOrigin


class TestManifestFromYaml:
    def test_full_manifest(self, tmp_path):
        path = tmp_path / "sample.yaml"
        path.write_text(
            """
vars:
  min_id: 1000
  active: true
  note:
tables:
  - table: users
    query: "SELECT * FROM users WHERE {{min_id}} < id"
    columns: [id, email]
    post_actions:
      - "SELECT setval('users_id_seq', (SELECT max(id) FROM users))"
  - table: tickets
"""
        )

        manifest = load_manifest(path)

        assert manifest.vars == {"min_id": "1000", "active": "true", "note": ""}
        assert manifest.table_names() == ["users", "tickets"]

        users = manifest.tables[0]
        assert users.query == "SELECT * FROM users WHERE {{min_id}} < id"
        assert users.columns == ["id", "email"]
        assert users.post_actions == [
            "SELECT setval('users_id_seq', (SELECT max(id) FROM users))"
        ]
        assert users.origin is SpecOrigin.DECLARED

        tickets = manifest.tables[1]
        assert tickets.query == ""
        assert tickets.columns == []
        assert tickets.post_actions == []

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")

        manifest = load_manifest(path)

        assert manifest.vars == {}
        assert manifest.tables == []

    def test_missing_file(self, tmp_path):
        with pytest.raises(ManifestError, match="File does not exist"):
            load_manifest(tmp_path / "nope.yaml")

    def test_directory(self, tmp_path):
        with pytest.raises(ManifestError, match="Path is not a file"):
            load_manifest(tmp_path)

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("tables: [\n  - table: users\n")

        with pytest.raises(ManifestError, match="Invalid YAML"):
            load_manifest(path)

    def test_error_names_path(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("- just\n- a list\n")

        with pytest.raises(ManifestError) as exc_info:
            load_manifest(path)

        assert exc_info.value.path == str(path)
        assert "must contain a YAML mapping" in exc_info.value.reason


class TestManifestFromDict:
    def test_unknown_keys_ignored(self):
        manifest = Manifest.from_dict(
            {"version": 2, "tables": [{"table": "users", "comment": "x"}]}
        )
        assert manifest.table_names() == ["users"]

    def test_tables_must_be_list(self):
        with pytest.raises(ValueError, match="'tables' section must be a list"):
            Manifest.from_dict({"tables": {"table": "users"}})

    def test_vars_must_be_mapping(self):
        with pytest.raises(ValueError, match="'vars' section must be a mapping"):
            Manifest.from_dict({"vars": ["a"]})

    def test_vars_must_be_scalars(self):
        with pytest.raises(ValueError, match="must be a scalar"):
            Manifest.from_dict({"vars": {"ids": [1, 2]}})

    def test_entry_requires_table(self):
        with pytest.raises(ValueError, match="'table' is required"):
            Manifest.from_dict({"tables": [{"query": "SELECT 1"}]})

    def test_entry_must_be_mapping(self):
        with pytest.raises(ValueError, match="must be a mapping"):
            Manifest.from_dict({"tables": ["users"]})

    def test_columns_must_be_strings(self):
        with pytest.raises(ValueError, match="must contain only strings"):
            Manifest.from_dict({"tables": [{"table": "users", "columns": ["id", 3]}]})

    def test_query_must_be_string(self):
        with pytest.raises(ValueError, match="'query' must be a string"):
            Manifest.from_dict({"tables": [{"table": "users", "query": 42}]})

    def test_duplicate_table_last_entry_wins(self):
        manifest = Manifest.from_dict(
            {
                "tables": [
                    {"table": "users", "query": "SELECT 1"},
                    {"table": "tickets"},
                    {"table": "users", "query": "SELECT 2"},
                ]
            }
        )

        assert manifest.table_names() == ["users", "tickets"]
        assert manifest.tables[0].query == "SELECT 2"

    def test_numeric_vars_rendered_as_text(self):
        manifest = Manifest.from_dict({"vars": {"ratio": 0.5, "limit": 10}})
        assert manifest.vars == {"ratio": "0.5", "limit": "10"}
