"""Tests for chart reference tables."""

import logging

import pytest

from conftest import write_chart_csv
from whoish_risk.core.config import settings
from whoish_risk.services.cvd_risk import WHO_2019_MODEL, WHO_ISH_MODEL
from whoish_risk.services.reference_table import (
    ReferenceTable,
    ReferenceTableError,
    load_reference_table,
)
from whoish_risk.services.risk_models import WHO2019Subregion, WHOISHSubregion


class TestFromRecords:
    """Test building tables from parsed rows."""

    def test_row_count(self, who_2019_table, who_2019_records):
        assert who_2019_table.row_count == len(who_2019_records)
        assert who_2019_table.duplicate_keys == []

    def test_lookup_2019(self, who_2019_table):
        """Test a 2019 key returns the numeric value of its subregion column."""
        value = who_2019_table.lookup("40-44_0_0_0_<120_<4", WHO2019Subregion.N_AFR_ME)
        assert value == 1.0

    def test_lookup_who_ish(self, who_ish_table):
        """Test a WHO/ISH key returns the risk level text."""
        value = who_ish_table.lookup("400001204", WHOISHSubregion.AFR_D)
        assert value == "<10%"

    def test_unknown_key(self, who_2019_table):
        assert who_2019_table.lookup("99-99_1_0_0_120-139_5-5.9", WHO2019Subregion.WES_EUR) is None
        assert who_2019_table.position(None) is None

    def test_empty_records(self):
        with pytest.raises(ReferenceTableError, match="empty"):
            ReferenceTable.from_records(WHO_ISH_MODEL, [])

    def test_missing_subregion_column(self, who_ish_records):
        for record in who_ish_records:
            del record["EUR_A"]

        with pytest.raises(ReferenceTableError, match="EUR_A"):
            ReferenceTable.from_records(WHO_ISH_MODEL, who_ish_records)

    def test_missing_key_column(self, who_2019_records):
        for record in who_2019_records:
            del record["smk"]

        with pytest.raises(ReferenceTableError, match="smk"):
            ReferenceTable.from_records(WHO_2019_MODEL, who_2019_records)

    def test_invalid_numeric_value(self, who_2019_records):
        who_2019_records[3]["CAR"] = "high"

        with pytest.raises(ReferenceTableError, match="row 4, column CAR"):
            ReferenceTable.from_records(WHO_2019_MODEL, who_2019_records)

    def test_empty_key_field(self, who_ish_records):
        who_ish_records[0]["age"] = ""

        with pytest.raises(ReferenceTableError, match="empty key field"):
            ReferenceTable.from_records(WHO_ISH_MODEL, who_ish_records)

    def test_na_value_is_unmatched(self, who_2019_records):
        """Test an NA cell reads back as None."""
        who_2019_records[0]["WES_EUR"] = "NA"
        table = ReferenceTable.from_records(WHO_2019_MODEL, who_2019_records)

        assert table.lookup("40-44_0_0_0_<120_<4", WHO2019Subregion.WES_EUR) is None
        assert table.lookup("40-44_0_0_0_<120_<4", WHO2019Subregion.CAR) is not None


class TestDuplicateKeys:
    """Test tables with a repeated composite key."""

    def test_first_row_wins(self, who_ish_records, caplog):
        first = who_ish_records[0]
        duplicate = {**first, **{code: ">=40%" for code in WHO_ISH_MODEL.subregion_codes}}
        who_ish_records.append(duplicate)

        with caplog.at_level(logging.WARNING):
            table = ReferenceTable.from_records(WHO_ISH_MODEL, who_ish_records)

        assert table.row_count == len(who_ish_records)
        assert table.duplicate_keys == ["400001204"]
        assert table.lookup("400001204", WHOISHSubregion.AFR_D) == first["AFR_D"]
        assert "duplicate keys" in caplog.text

    def test_stats_count_duplicates(self, who_ish_records):
        who_ish_records.append(dict(who_ish_records[5]))
        table = ReferenceTable.from_records(WHO_ISH_MODEL, who_ish_records)

        stats = table.get_stats()
        assert stats["rows"] == len(who_ish_records)
        assert stats["distinct_keys"] == len(who_ish_records) - 1
        assert stats["duplicate_keys"] == 1


class TestRows:
    """Test row iteration."""

    @pytest.mark.parametrize("table_fixture", ["who_2019_table", "who_ish_table"])
    def test_every_row_finds_itself(self, request, table_fixture):
        """Test looking up each row's own key returns that row's values in every subregion."""
        table = request.getfixturevalue(table_fixture)

        for row in table.rows():
            for region in table.model.subregions:
                assert table.lookup(row.key, region) == row.values[region.value]

    def test_row_keys_rebuilt_from_labels(self, who_ish_table):
        """Test each stored key equals the key built from the row's own labels."""
        for row in who_ish_table.rows():
            assert who_ish_table.model.build_key(row.labels) == row.key

    def test_rows_in_table_order(self, who_ish_table, who_ish_records):
        rows = list(who_ish_table.rows())

        assert len(rows) == len(who_ish_records)
        assert rows[0].labels.as_tuple() == ("40", "0", "0", "0", "120", "4")
        assert rows[-1].key == "701111808"

    def test_stats(self, who_2019_table):
        stats = who_2019_table.get_stats()

        assert stats["model"] == "who-2019"
        assert stats["source"] is None
        assert stats["subregions"] == 21
        assert stats["duplicate_keys"] == 0


class TestLoadReferenceTable:
    """Test loading chart CSV assets."""

    def test_load(self, chart_dir, who_ish_records):
        path = chart_dir / settings.who_ish_table_file
        table = load_reference_table(WHO_ISH_MODEL, path)

        assert table.row_count == len(who_ish_records)
        assert table.get_stats()["source"] == str(path)

    def test_load_with_byte_order_mark(self, tmp_path, who_2019_records):
        path = tmp_path / "bom.csv"
        write_chart_csv(path, who_2019_records)
        path.write_bytes(b"\xef\xbb\xbf" + path.read_bytes())

        table = load_reference_table(WHO_2019_MODEL, path)
        assert table.lookup("40-44_0_0_0_<120_<4", WHO2019Subregion.N_AFR_ME) == 1.0

    def test_missing_file(self, tmp_path):
        with pytest.raises(ReferenceTableError, match="not found"):
            load_reference_table(WHO_2019_MODEL, tmp_path / "missing.csv")

    def test_header_only_file(self, tmp_path):
        path = tmp_path / "empty.csv"
        path.write_text("age,gdr,dm,smk,sbp,chl,EUR_A\n")

        with pytest.raises(ReferenceTableError, match="empty"):
            load_reference_table(WHO_ISH_MODEL, path)

    def test_load_logs_summary(self, chart_dir, caplog):
        with caplog.at_level(logging.INFO, logger="whoish_risk"):
            load_reference_table(WHO_ISH_MODEL, chart_dir / settings.who_ish_table_file)

        assert "Loaded WHO/ISH 10-year CVD risk table" in caplog.text
