"""
Tests for the DataFrame bridge used by the editor's data table.
"""

import pandas as pd

from pawsheets.grid import HEADER_ROW_LABEL, changed_cells, column_labels, frame_to_values, row_labels, worksheet_to_frame


class TestFrame:

    def test_labels(self, pets):
        assert column_labels(pets) == ["A (Images)", "B", "C"]
        assert row_labels(pets) == [HEADER_ROW_LABEL, "2", "3", "4"]

    def test_frame_mirrors_cells(self, pets):
        frame = worksheet_to_frame(pets)
        assert frame.shape == (4, 3)
        assert frame.iloc[1].tolist() == ["https://img.example/fido.png", "Fido", "3"]

    def test_frame_to_values_cleans_missing(self):
        frame = pd.DataFrame([[None, float("nan"), 7]], dtype="object")
        assert frame_to_values(frame) == [["", "", "7"]]


class TestChangedCells:

    def test_unchanged_frame(self, pets):
        assert changed_cells(pets, worksheet_to_frame(pets)) == []

    def test_reports_edits(self, pets):
        frame = worksheet_to_frame(pets)
        frame.iat[1, 1] = "Spot"
        frame.iat[2, 2] = None
        assert changed_cells(pets, frame) == [(1, 1, "Spot"), (2, 2, "")]

    def test_extra_rows_and_columns_are_ignored(self, pets):
        frame = worksheet_to_frame(pets)
        frame["extra"] = "x"
        frame.loc["99"] = ["a", "b", "c", "d"]
        assert changed_cells(pets, frame) == []
