"""
Tests for the server-side state table
"""

from server.state_table import StateTable
from shared.protocol import PositionSample


class TestStateTable:

    def test_upsert_last_write_wins(self):
        table = StateTable()
        table.upsert("conn1", "a", PositionSample(1, 1, 1))
        table.upsert("conn1", "a", PositionSample(2, 2, 2))
        assert table.snapshot() == {"a": PositionSample(2, 2, 2)}
        assert len(table) == 1

    def test_fold_matches_last_sample_per_id(self):
        samples = [
            ("c1", "a", PositionSample(1, 0, 1)),
            ("c2", "b", PositionSample(5, 5, 4)),
            ("c1", "a", PositionSample(2, 0, 2)),
            ("c3", "c", PositionSample(9, 9, 9)),
            ("c2", "b", PositionSample(6, 5, 5)),
        ]
        table = StateTable()
        expected = {}
        for conn, pid, sample in samples:
            table.upsert(conn, pid, sample)
            expected[pid] = sample
        assert table.snapshot() == expected

    def test_remove_connection_drops_its_ids(self):
        table = StateTable()
        table.upsert("c1", "a", PositionSample(1, 1, 1))
        table.upsert("c2", "b", PositionSample(2, 2, 2))

        assert table.remove_connection("c1") == ["a"]
        assert "a" not in table
        assert table.snapshot() == {"b": PositionSample(2, 2, 2)}

    def test_remove_unknown_connection(self):
        table = StateTable()
        assert table.remove_connection("nobody") == []

    def test_connection_with_several_ids(self):
        table = StateTable()
        table.upsert("c1", "a", PositionSample(1, 1, 1))
        table.upsert("c1", "a2", PositionSample(1, 1, 1))
        assert table.participant_ids("c1") == {"a", "a2"}
        assert table.remove_connection("c1") == ["a", "a2"]
        assert len(table) == 0

    def test_id_moving_to_another_connection(self):
        table = StateTable()
        table.upsert("old", "a", PositionSample(1, 1, 1))
        table.upsert("new", "a", PositionSample(2, 2, 2))

        # Closing the old connection must not drop the id the new one owns
        assert table.remove_connection("old") == []
        assert table.snapshot() == {"a": PositionSample(2, 2, 2)}
        assert table.participant_ids("old") == set()
        assert table.participant_ids("new") == {"a"}

    def test_snapshot_is_a_copy(self):
        table = StateTable()
        table.upsert("c1", "a", PositionSample(1, 1, 1))
        snap = table.snapshot()
        table.upsert("c1", "b", PositionSample(2, 2, 2))
        assert "b" not in snap
