"""Unit tests for tasktrack.services.query_builder — param parsing and SQL shape."""

import pytest

from tasktrack.services.query_builder import (
    DEFAULT_SORT,
    TaskQuery,
    build_task_query,
    escape_like,
)


class TestBuildTaskQuery:

    def test_no_params(self):
        query = build_task_query("owner1")
        assert query == TaskQuery(owner_id="owner1")
        assert query.sort == DEFAULT_SORT == "newest"

    def test_valid_filters(self):
        query = build_task_query("o", {"status": "in-progress", "priority": "high", "search": " milk "})
        assert query.status == "in-progress"
        assert query.priority == "high"
        assert query.search == "milk"

    @pytest.mark.parametrize("params", [
        {"status": "done"},
        {"status": ""},
        {"priority": "urgent"},
        {"priority": "HIGH"},
    ])
    def test_invalid_filters_ignored(self, params):
        query = build_task_query("o", params)
        assert query.status is None
        assert query.priority is None

    @pytest.mark.parametrize("sort", ["newest", "oldest", "priority", "dueDate"])
    def test_known_sorts(self, sort):
        assert build_task_query("o", {"sort": sort}).sort == sort

    @pytest.mark.parametrize("sort", ["title", "", "DUEDATE", None])
    def test_unknown_sort_defaults_to_newest(self, sort):
        assert build_task_query("o", {"sort": sort}).sort == "newest"

    def test_blank_search_is_no_constraint(self):
        assert build_task_query("o", {"search": "   "}).search is None

    def test_owner_cannot_be_overridden(self):
        query = build_task_query("o", {"owner_id": "someone-else", "user": "x"})
        assert query.owner_id == "o"

    def test_list_values_take_first(self):
        assert build_task_query("o", {"status": ["completed", "pending"]}).status == "completed"


class TestToSelect:

    def _sql(self, query):
        return str(query.to_select().compile(compile_kwargs={"literal_binds": True}))

    def test_owner_clause_always_present(self):
        sql = self._sql(TaskQuery(owner_id="abc"))
        assert "tasks.user_id = 'abc'" in sql

    def test_search_matches_title_or_description(self):
        sql = self._sql(TaskQuery(owner_id="abc", search="milk")).lower()
        assert "tasks.title" in sql
        assert "tasks.description" in sql
        assert " or " in sql

    def test_priority_sort_uses_rank(self):
        sql = self._sql(TaskQuery(owner_id="abc", sort="priority")).upper()
        assert "CASE" in sql


class TestEscapeLike:

    def test_wildcards_escaped(self):
        assert escape_like("50%_off") == "50\\%\\_off"

    def test_backslash_escaped(self):
        assert escape_like("a\\b") == "a\\\\b"

    def test_plain_text_unchanged(self):
        assert escape_like("milk") == "milk"
