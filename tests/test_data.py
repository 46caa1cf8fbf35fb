"""
Tests for loading inventory data and preparing the render context.

Tests cover:
- Local CSV loading through an explicit path and the data directory
- Spreadsheet loading through an injected reader
- Filtering, grouping and packing in prepare_context
"""

from unittest.mock import MagicMock

import pytest

from modmap import data as data_mod
from modmap.config import ChartConfig, SourceConfig
from modmap.data import file_signature, get_source_files, load_inventory_data, prepare_context
from modmap.errors import EmptyDatasetError
from modmap.filters import ModuleFilters

CSV = (
    "Module,Application,Team,Product Owner\n"
    "mod-a,App One,Alpha,Ann\n"
    'mod-b,"App, Two",Alpha,"Doe, Jo"\n'
    "mod-c,,Beta,\n"
)


@pytest.fixture
def csv_file(tmp_path):
    path = tmp_path / "inventory.csv"
    path.write_text(CSV, encoding="utf-8")
    return path


class TestLoadInventoryData:
    def test_explicit_csv_path(self, csv_file):
        ctx = load_inventory_data(SourceConfig(csv_path=csv_file))

        assert ctx["source"] == str(csv_file)
        assert [r["module"] for r in ctx["records"]] == ["mod-a", "mod-b", "mod-c"]
        assert ctx["records"][1]["product owner"] == "Doe, Jo"
        assert list(ctx["frame"]["team"]) == ["Alpha", "Alpha", "Beta"]

    def test_records_are_copies(self, csv_file):
        first = load_inventory_data(SourceConfig(csv_path=csv_file))
        first["records"][0]["module"] = "changed"
        second = load_inventory_data(SourceConfig(csv_path=csv_file))
        assert second["records"][0]["module"] == "mod-a"

    def test_spreadsheet_uses_reader(self):
        reader = MagicMock()
        reader.read_public_spreadsheet.return_value = [{"module": "mod-x", "application": "", "team": "T"}]

        ctx = load_inventory_data(SourceConfig(spreadsheet_id="abc", sheet="5"), reader=reader)

        reader.read_public_spreadsheet.assert_called_once_with("abc", "5", as_objects=True)
        assert ctx["source"] == "sheet:abc"
        assert ctx["records"][0]["module"] == "mod-x"

    def test_falls_back_to_data_dir(self, tmp_path, csv_file, monkeypatch):
        monkeypatch.setattr(data_mod, "get_source_files", lambda: get_source_files(tmp_path))

        ctx = load_inventory_data(SourceConfig())

        assert ctx["source"] == str(csv_file)
        assert len(ctx["records"]) == 3

    def test_empty_data_dir(self, tmp_path, monkeypatch):
        monkeypatch.setattr(data_mod, "get_source_files", lambda: get_source_files(tmp_path))
        ctx = load_inventory_data(SourceConfig())
        assert ctx["records"] == []
        assert ctx["frame"].empty


def test_file_signature_tracks_mtime(csv_file):
    sig = file_signature([csv_file])
    assert sig == ((str(csv_file), csv_file.stat().st_mtime),)


class TestPrepareContext:
    def test_full_inventory(self, inventory_records):
        ctx = prepare_context({}, {"records": inventory_records})

        assert ctx["tree"]["name"] == "FOLIO"
        assert [t["name"] for t in ctx["tree"]["children"]] == ["Folijet", "Vega", "Volaris"]
        assert ctx["layout"].root.r == pytest.approx(466)
        assert len(ctx["modules"]) == 6
        assert not ctx["filters"].is_active

    def test_chart_config_controls_layout(self, inventory_records):
        ctx = prepare_context(ModuleFilters(), {"records": inventory_records}, ChartConfig(width=400, height=300, root_name="All"))
        assert ctx["tree"]["name"] == "All"
        assert ctx["layout"].root.r == pytest.approx(150)

    def test_application_filter_collapses_root(self, inventory_records):
        ctx = prepare_context({"selected_application": "Users"}, {"records": inventory_records})

        assert ctx["tree"] == {"name": "Volaris - Users", "children": [{"name": "mod-users"}]}
        assert [r["module"] for r in ctx["filtered_records"]] == ["mod-users"]
        assert list(ctx["filtered_frame"]["module"]) == ["mod-users"]

    def test_all_labels_mean_no_filter(self, inventory_records):
        ctx = prepare_context(
            {"selected_module": "All Modules", "selected_application": "All Applications"},
            {"records": inventory_records},
        )
        assert len(ctx["filtered_records"]) == len(inventory_records)

    def test_no_match_raises(self, inventory_records):
        with pytest.raises(EmptyDatasetError):
            prepare_context({"selected_module": "mod-missing"}, {"records": inventory_records})

    def test_no_records_raises(self):
        with pytest.raises(EmptyDatasetError):
            prepare_context({}, {"records": []})
