"""Test the connection/room membership table."""

import threading

from roombus.gateway.membership import MembershipTable


class TestJoin:
    def test_first_member_reported(self):
        table = MembershipTable()
        assert table.join("c1", "r") is True
        assert table.join("c2", "r") is False

    def test_join_is_idempotent(self):
        table = MembershipTable()
        table.join("c1", "r")
        assert table.join("c1", "r") is False
        assert table.members_of("r") == {"c1"}
        assert table.rooms_of("c1") == {"r"}

    def test_join_without_room_registers_default_path_only(self):
        table = MembershipTable()
        assert table.join("c1", None) is False
        assert "c1" in table
        assert table.rooms_of("c1") == frozenset()
        assert table.room_names() == frozenset()

    def test_rejoin_after_room_emptied_is_first_again(self):
        table = MembershipTable()
        table.join("c1", "r")
        table.leave("c1", "r")
        assert table.join("c1", "r") is True


class TestLeave:
    def test_last_member_empties_room(self):
        table = MembershipTable()
        table.join("c1", "r")
        table.join("c2", "r")
        assert table.leave("c1", "r") is False
        assert table.leave("c2", "r") is True
        assert "r" not in table.room_names()

    def test_leave_non_member_is_noop(self):
        table = MembershipTable()
        table.join("c1", "r")
        assert table.leave("c2", "r") is False
        assert table.members_of("r") == {"c1"}

    def test_leave_unknown_room_reports_empty(self):
        table = MembershipTable()
        assert table.leave("c1", "ghost") is True

    def test_leave_twice_is_noop(self):
        table = MembershipTable()
        table.join("c1", "r")
        table.leave("c1", "r")
        assert table.leave("c1", "r") is True
        assert table.rooms_of("c1") == frozenset()

    def test_leave_keeps_connection_on_default_path(self):
        table = MembershipTable()
        table.join("c1", "r")
        table.leave("c1", "r")
        assert "c1" in table

    def test_leave_without_room_is_noop(self):
        table = MembershipTable()
        table.join("c1", "r")
        assert table.leave("c1", None) is False
        assert table.rooms_of("c1") == {"r"}


class TestLeaveAll:
    def test_removes_every_room_and_record(self):
        table = MembershipTable()
        table.join("c1", "a")
        table.join("c1", "b")
        table.join("c2", "b")

        emptied = table.leave_all("c1")

        assert emptied == ["a"]
        assert "c1" not in table
        assert table.rooms_of("c1") == frozenset()
        assert table.members_of("b") == {"c2"}
        assert table.room_names() == {"b"}

    def test_unknown_connection(self):
        table = MembershipTable()
        assert table.leave_all("nobody") == []

    def test_default_path_only_connection_forgotten(self):
        table = MembershipTable()
        table.join("c1", None)
        table.leave_all("c1")
        assert len(table) == 0


class TestReads:
    def test_unknown_keys_are_empty(self):
        table = MembershipTable()
        assert table.rooms_of("x") == frozenset()
        assert table.members_of("x") == frozenset()
        assert table.connections() == frozenset()

    def test_reads_are_snapshots(self):
        table = MembershipTable()
        table.join("c1", "r")
        members = table.members_of("r")
        table.join("c2", "r")
        assert members == {"c1"}

    def test_indices_stay_consistent(self):
        table = MembershipTable()
        for c, r in [("c1", "a"), ("c2", "a"), ("c1", "b"), ("c3", "c")]:
            table.join(c, r)
        table.leave("c2", "a")
        table.leave_all("c3")
        for room in table.room_names():
            for c in table.members_of(room):
                assert room in table.rooms_of(c)
        for c in table.connections():
            for room in table.rooms_of(c):
                assert c in table.members_of(room)


class TestTargets:
    def _table(self):
        table = MembershipTable()
        table.join("c1", "a")
        table.join("c2", "a")
        table.join("c2", "b")
        table.join("c3", "b")
        table.join("c4", None)
        return table

    def test_no_rooms_targets_everyone(self):
        assert self._table().targets([]) == ["c1", "c2", "c3", "c4"]

    def test_single_room(self):
        assert self._table().targets(["b"]) == ["c2", "c3"]

    def test_multiple_rooms_deduplicated(self):
        assert self._table().targets(["a", "b"]) == ["c1", "c2", "c3"]

    def test_room_order_respected(self):
        assert self._table().targets(["b", "a"]) == ["c2", "c3", "c1"]

    def test_except_excluded(self):
        assert self._table().targets(["a", "b"], {"c2"}) == ["c1", "c3"]
        assert self._table().targets([], {"c1", "c4"}) == ["c2", "c3"]

    def test_unknown_room_targets_nobody(self):
        assert self._table().targets(["ghost"]) == []


class TestThreadSafety:
    def test_concurrent_join_leave_keeps_indices_consistent(self):
        table = MembershipTable()

        def churn(worker: int) -> None:
            for i in range(200):
                room = f"r{i % 5}"
                conn = f"w{worker}-{i % 7}"
                table.join(conn, room)
                if i % 3 == 0:
                    table.leave(conn, room)
                if i % 11 == 0:
                    table.leave_all(conn)

        threads = [threading.Thread(target=churn, args=(w,)) for w in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        for room in table.room_names():
            members = table.members_of(room)
            assert members
            for c in members:
                assert room in table.rooms_of(c)
