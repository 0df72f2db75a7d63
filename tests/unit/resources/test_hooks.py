"""Unit tests for resource hooks and their defaults."""

import pytest

from student_records.resources.hooks import ResourceHooks, equality_filter, passthrough
from student_records.store import Repository, Student, UnknownFieldError


@pytest.mark.unit
class TestPassthrough:
    """Tests for the default transform."""

    def test_renames_camel_case_keys(self) -> None:
        assert passthrough({"firstName": "Ada", "email": "a@b.co"}) == {
            "first_name": "Ada",
            "email": "a@b.co",
        }

    def test_values_untouched(self) -> None:
        assert passthrough({"lastName": "  Lovelace "}) == {"last_name": "  Lovelace "}


@pytest.mark.unit
class TestEqualityFilter:
    """Tests for the default filter builder."""

    def test_builds_one_clause_per_param(
        self, repository: Repository[Student], make_row
    ) -> None:
        repository.create_many([make_row(1), make_row(2, last_name="Last001")])
        where = equality_filter(repository, {"lastName": "Last001", "firstName": "First002"})
        assert len(where) == 2
        records = repository.find_many(where)
        assert [r.student_code for r in records] == ["S002"]

    def test_skips_paging_keys_and_empty_values(self, repository: Repository[Student]) -> None:
        params = {"page": "1", "limit": "10", "sort": "id", "order": "asc", "email": ""}
        assert equality_filter(repository, params) == []

    def test_unknown_field(self, repository: Repository[Student]) -> None:
        with pytest.raises(UnknownFieldError):
            equality_filter(repository, {"nickname": "ace"})


@pytest.mark.unit
class TestResourceHooks:
    """Tests for the hook defaults."""

    def test_defaults(self) -> None:
        hooks = ResourceHooks()
        assert hooks.transform_create is passthrough
        assert hooks.transform_update is passthrough
        assert hooks.build_filter is equality_filter
        assert hooks.check_unique is None
        assert hooks.search is None

    def test_frozen(self) -> None:
        hooks = ResourceHooks()
        with pytest.raises(AttributeError):
            hooks.search = lambda term: []  # type: ignore[misc]
