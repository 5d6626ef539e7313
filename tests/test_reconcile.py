"""Tests for merging a fresh scan into the published list."""

from ports_core.reconcile import changes, merge, reconcile


class TestMerge:
    def test_retained_keep_old_position_new_values(self, rec):
        old = [rec("8080", "b"), rec("3000", "a")]
        new = [rec("3000", "a2", pid="9"), rec("8080", "b")]
        merged = merge(old, new)
        assert [r.port for r in merged] == ["8080", "3000"]
        assert merged[1].process_name == "a2"
        assert merged[1].pid == "9"

    def test_new_keys_appended_in_new_order(self, rec):
        old = [rec("3000")]
        new = [rec("9090"), rec("3000"), rec("1234")]
        assert [r.port for r in merge(old, new)] == ["3000", "9090", "1234"]

    def test_vanished_dropped(self, rec):
        old = [rec("3000"), rec("8080")]
        assert [r.port for r in merge(old, [rec("8080")])] == ["8080"]


class TestReconcile:
    def test_identical_is_no_publish(self, rec):
        old = [rec("3000", "a"), rec("8080", "b")]
        new = [rec("3000", "a"), rec("8080", "b")]
        assert reconcile(old, new) is None

    def test_scenario(self, rec):
        a, b = rec("3000", "A"), rec("8080", "B")
        b2, c = rec("8080", "B renamed"), rec("9090", "C")
        merged = reconcile([a, b], [a, b2, c])
        assert merged == [a, b2, c]

    def test_pid_change_is_a_change(self, rec):
        old = [rec("3000", pid="1")]
        assert reconcile(old, [rec("3000", pid="2")]) == [rec("3000", pid="2")]

    def test_result_is_sorted(self, rec):
        old = [rec("9000"), rec("80")]
        merged = reconcile(old, [rec("443"), rec("80"), rec("9000"), rec("22")])
        ports = [int(r.port) for r in merged]
        assert ports == sorted(ports)
        assert ports == [22, 80, 443, 9000]

    def test_everything_gone(self, rec):
        assert reconcile([rec("3000")], []) == []

    def test_empty_to_empty(self):
        assert reconcile([], []) is None


class TestChanges:
    def test_summary(self, rec):
        old = [rec("1"), rec("2", "x")]
        new = [rec("2", "y"), rec("3")]
        assert changes(old, new) == {"added": ["3"], "removed": ["1"], "changed": ["2"]}
