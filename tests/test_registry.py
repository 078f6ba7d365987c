from setup_wizard.core.registry import COMPLETED_KEY, CompletionRegistry
from setup_wizard.core.store import MemoryStore


def test_set_completed_then_is_completed():
    registry = CompletionRegistry(MemoryStore())
    assert not registry.is_completed("demo")
    assert registry.set_completed("demo")
    assert registry.is_completed("demo")


def test_set_completed_is_idempotent_but_still_runs_hooks():
    store = MemoryStore()
    calls = []
    registry = CompletionRegistry(store, on_completed=calls.append)

    registry.set_completed("demo")
    assert not registry.set_completed("demo")

    assert store.get(COMPLETED_KEY) == ["demo"]
    assert calls == ["demo", "demo"]


def test_hooks_can_be_suppressed():
    calls = []
    registry = CompletionRegistry(MemoryStore(), on_completed=calls.append)
    registry.set_completed("demo", run_hooks=False)
    assert registry.is_completed("demo")
    assert calls == []


def test_unknown_names_are_not_stored():
    calls = []
    registry = CompletionRegistry(MemoryStore(), on_completed=calls.append, known=lambda n: n == "demo")
    assert not registry.set_completed("other")
    assert not registry.is_completed("other")
    assert calls == ["other"]


def test_remove_last_name_deletes_the_record():
    store = MemoryStore()
    registry = CompletionRegistry(store)
    registry.set_completed("demo")
    assert registry.remove("demo")
    assert COMPLETED_KEY not in store


def test_remove_keeps_other_names():
    store = MemoryStore({COMPLETED_KEY: ["demo", "contact"]})
    registry = CompletionRegistry(store)
    registry.remove("demo")
    assert store.get(COMPLETED_KEY) == ["contact"]
    assert not registry.remove("missing")


def test_non_list_record_counts_as_empty():
    store = MemoryStore({COMPLETED_KEY: "demo"})
    registry = CompletionRegistry(store)
    assert not registry.is_completed("demo")
    registry.set_completed("demo")
    assert store.get(COMPLETED_KEY) == ["demo"]


def test_policy_overrides_membership():
    registry = CompletionRegistry(MemoryStore(), policy=lambda completed, name: completed or name == "legacy")
    assert registry.is_completed("legacy")
    assert not registry.is_completed("demo")
