"""Tests for the import item base class."""

from unittest.mock import Mock

from conftest import ListSource, UNREADABLE, mods_record


class TestMemoization:
    """title() and derived_document() are computed once per item."""

    def test_derived_document_transforms_once(self, make_item, stub_transformer):
        item = make_item(mods_record("Once"))

        first = item.derived_document()
        second = item.derived_document()

        assert first == second == "<dc>derived</dc>"
        assert stub_transformer.calls == 1

    def test_title_is_idempotent(self, make_item):
        item = make_item(mods_record("Harbour  Survey"))

        assert item.title() == "Harbour Survey"
        assert item.title() == "Harbour Survey"

    def test_primary_document_generated_once(self, make_item):
        item = make_item(mods_record("x"))
        item.generate_primary_document = Mock(return_value=mods_record("x"))

        item.title()
        item.derived_document()
        item.primary_document()

        assert item.generate_primary_document.call_count == 1

    def test_absent_primary_is_memoized(self, make_item, stub_transformer):
        item = make_item(None)

        assert item.derived_document() is None
        assert item.derived_document() is None
        assert item.title() == ""
        assert stub_transformer.calls == 0

    def test_items_do_not_share_results(self, make_item, stub_transformer):
        first = make_item(mods_record("One"))
        second = make_item(mods_record("Two"))

        first.derived_document()
        second.derived_document()

        assert stub_transformer.calls == 2
        assert first.title() == "One"
        assert second.title() == "Two"


class TestDefaults:
    """Default hooks of the base class."""

    def test_resources_default_empty(self, make_item):
        assert make_item(mods_record("x")).resources() == []

    def test_modify_relationships_is_noop(self, make_item):
        draft = Mock()
        make_item(mods_record("x")).modify_relationships(draft)
        assert draft.mock_calls == []

    def test_content_models_copied(self, make_item):
        models = ["cm:book"]
        item = make_item(mods_record("x"), content_models=models)
        models.append("cm:other")

        assert item.content_models == ["cm:book"]


class TestExtractOne:
    """The extraction protocol."""

    def test_returns_items_in_order(self, stub_generator):
        source = ListSource([mods_record("a"), mods_record("b")], namespace="demo",
                            content_models=["cm:book"])

        first = source.extract_one(stub_generator)
        second = source.extract_one(stub_generator)

        assert first.title() == "a"
        assert second.title() == "b"
        assert first.pid_namespace == "demo"
        assert first.content_models == ["cm:book"]

    def test_exhausted_returns_none(self, stub_generator):
        source = ListSource([])
        assert source.extract_one(stub_generator) is None

    def test_unusable_entry_is_consumed(self, stub_generator):
        source = ListSource([UNREADABLE, mods_record("next")])

        assert source.extract_one(stub_generator) is None
        assert source.extract_one(stub_generator).title() == "next"
        assert source.extract_one(stub_generator) is None

    def test_skip(self):
        source = ListSource([mods_record("a"), mods_record("b"), mods_record("c")])

        assert source.skip(2) == 2
        assert source.skip(5) == 1
        assert source.pop_entry() is None
