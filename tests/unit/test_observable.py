"""Tests for observable values and collections."""

from hubsync_pkg.domain import KeyedCollection, ObservableList, ObservableValue


class TestObservableValue:
    """Test change notifications of single values."""

    def test_notifies_old_and_new(self):
        value = ObservableValue(1)
        changes = []
        value.subscribe(lambda old, new: changes.append((old, new)))

        value.value = 2

        assert changes == [(1, 2)]

    def test_same_value_is_silent(self):
        value = ObservableValue("idle")
        changes = []
        value.subscribe(lambda old, new: changes.append(new))

        value.value = "idle"

        assert changes == []

    def test_unsubscribe(self):
        value = ObservableValue(False)
        changes = []
        unsubscribe = value.subscribe(lambda old, new: changes.append(new))

        unsubscribe()
        value.value = True

        assert changes == []
        assert value.value is True


class TestObservableList:
    """Test one notification per mutation."""

    def test_append_and_remove(self):
        items = ObservableList()
        changes = []
        items.subscribe(changes.append)

        items.append("a")
        items.remove("a")

        assert [change.action for change in changes] == ["add", "remove"]
        assert changes[0].items == ("a",)
        assert len(items) == 0

    def test_extend_is_one_change(self):
        items = ObservableList()
        changes = []
        items.subscribe(changes.append)

        items.extend(["a", "b", "c"])
        items.extend([])

        assert len(changes) == 1
        assert changes[0].items == ("a", "b", "c")

    def test_reset_replaces_content(self):
        items = ObservableList(["a", "b"])
        changes = []
        items.subscribe(changes.append)

        items.reset(["c"])

        assert list(items) == ["c"]
        assert changes[0].action == "reset"

    def test_iteration_is_a_snapshot(self):
        items = ObservableList([1, 2, 3])
        for item in items:
            if item == 1:
                items.remove(item)
        assert list(items) == [2, 3]


class TestKeyedCollection:
    """Test upsert semantics."""

    def test_upsert_replaces_same_key(self):
        collection = KeyedCollection()
        changes = []
        collection.subscribe(changes.append)

        collection.upsert("k", 1)
        previous = collection.upsert("k", 2)

        assert previous == 1
        assert collection.values() == [2]
        assert [change.action for change in changes] == ["add", "replace"]

    def test_insertion_order_kept(self):
        collection = KeyedCollection()
        collection.upsert("b", 1)
        collection.upsert("a", 2)
        collection.upsert("b", 3)

        assert collection.keys() == ["b", "a"]

    def test_remove_missing_is_silent(self):
        collection = KeyedCollection()
        changes = []
        collection.subscribe(changes.append)

        assert collection.remove("missing") is None
        assert changes == []
