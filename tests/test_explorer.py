"""Unit tests for the explorer handle and drill-down queries."""

import pytest
from catalog_explorer.errors import InvalidFilterError, RecordNotFoundError
from catalog_explorer.models import Facet, FacetFilter

from conftest import CLONE, DKC, MD_SYSTEM, SMW, SNES_SYSTEM, SONIC

ACTION, PLATFORM = 0, 1
MD, SNES = 0, 1


def f(facet, rank=None):
    return FacetFilter(facet=facet, rank=rank)


def value_texts(listing):
    return [v.text for v in listing.values]


class TestLifecycle:
    def test_queries_before_build_are_empty(self, explorer):
        assert not explorer.is_built
        assert explorer.list_facets() == []
        assert len(explorer.list_records()) == 0
        assert explorer.list_values(Facet.GENRE).values == []
        assert explorer.stats.records == 0
        with pytest.raises(RecordNotFoundError):
            explorer.resolve_record(0)

    def test_build_is_idempotent(self, explorer, metadata):
        first = explorer.build()
        index = explorer.index
        second = explorer.build()
        assert explorer.index is index
        assert second == first
        assert len(metadata.opened) == 2
        explorer.teardown()

    def test_teardown_releases_everything(self, explorer, playlists):
        explorer.build()
        explorer.teardown()
        assert not explorer.is_built
        assert all(pl.released for pl in playlists)
        assert len(explorer.list_records()) == 0

    def test_teardown_without_index(self, explorer):
        explorer.teardown()
        explorer.teardown()
        assert not explorer.is_built

    def test_rebuild(self, explorer, playlists):
        explorer.build()
        old = explorer.index
        stats = explorer.rebuild()
        assert explorer.index is not old
        assert stats.records == 4
        # The playlists were reopened by the second build.
        assert not playlists[0].released


class TestListFacets:
    def test_non_empty_facets(self, built):
        facets = [s.facet for s in built.list_facets()]
        assert facets == [
            Facet.DEVELOPER,
            Facet.PUBLISHER,
            Facet.RELEASE_YEAR,
            Facet.PLAYER_COUNT,
            Facet.GENRE,
            Facet.REGION,
            Facet.FRANCHISE,
            Facet.SYSTEM,
        ]

    def test_numeric_range(self, built):
        years = next(s for s in built.list_facets() if s.facet is Facet.RELEASE_YEAR)
        assert years.count == 3
        assert years.min_value == "1990"
        assert years.max_value == "1994"
        genre = next(s for s in built.list_facets() if s.facet is Facet.GENRE)
        assert genre.min_value is None
        assert genre.has_unknown

    def test_filtered_facets_left_out(self, built):
        facets = [s.facet for s in built.list_facets([f(Facet.GENRE, ACTION)])]
        assert Facet.GENRE not in facets
        assert Facet.SYSTEM in facets


class TestListRecords:
    def test_no_filters_lists_everything(self, built):
        assert built.list_records().ids == [DKC, CLONE, SONIC, SMW]

    def test_overflow_value_matches(self, built):
        assert built.list_records([f(Facet.GENRE, ACTION)]).ids == [DKC, SMW]

    def test_primary_value_matches(self, built):
        assert built.list_records([f(Facet.GENRE, PLATFORM)]).ids == [SONIC, SMW]

    def test_filters_are_anded(self, built):
        ids = built.list_records([f(Facet.GENRE, PLATFORM), f(Facet.SYSTEM, SNES)]).ids
        assert ids == [SMW]

    def test_unknown_bucket(self, built):
        assert built.list_records([f(Facet.GENRE)]).ids == [CLONE]
        assert built.list_records([f(Facet.PLAYER_COUNT)]).ids == [DKC, CLONE]

    def test_known_and_unknown_partition_all_records(self, built):
        for facet in (Facet.GENRE, Facet.SYSTEM, Facet.PUBLISHER):
            table = built.index.table(facet)
            matched = set(built.list_records([f(facet)]).ids)
            for rank in range(len(table)):
                matched |= set(built.list_records([f(facet, rank)]).ids)
            assert matched == set(range(4))

    def test_substring_is_case_insensitive(self, built):
        assert built.list_records(substring="MARIO").ids == [CLONE, SMW]
        assert built.list_records([f(Facet.GENRE, ACTION)], "mario").ids == [SMW]

    def test_adding_a_filter_narrows(self, built):
        wide = set(built.list_records([f(Facet.GENRE, PLATFORM)]).ids)
        narrow = set(built.list_records([f(Facet.GENRE, PLATFORM), f(Facet.REGION, 0)]).ids)
        assert narrow <= wide
        assert narrow == {SONIC}

    def test_titles(self, built):
        records = built.list_records([f(Facet.DEVELOPER, 1)]).records
        assert [(r.title, r.label) for r in records] == [("Super Donkey Kong", "Donkey Kong Country")]

    def test_rank_out_of_range(self, built):
        with pytest.raises(InvalidFilterError):
            built.list_records([f(Facet.GENRE, 2)])

    def test_empty_facet_rejects_any_rank(self, built):
        with pytest.raises(InvalidFilterError):
            built.list_records([f(Facet.TAGS, 0)])

    def test_negative_rank_rejected_by_model(self):
        with pytest.raises(ValueError):
            FacetFilter(facet=Facet.GENRE, rank=-1)


class TestListValues:
    def test_all_values(self, built):
        listing = built.list_values(Facet.GENRE)
        assert value_texts(listing) == ["Action", "Platform"]
        assert [v.rank for v in listing.values] == [ACTION, PLATFORM]
        assert listing.has_unknown

    def test_narrowed_by_other_filters(self, built):
        listing = built.list_values(Facet.DEVELOPER, [f(Facet.SYSTEM, SNES)])
        assert value_texts(listing) == ["Nintendo", "Rare"]
        assert not listing.has_unknown

    def test_filter_on_listed_facet_ignored(self, built):
        listing = built.list_values(Facet.GENRE, [f(Facet.GENRE, PLATFORM)])
        assert value_texts(listing) == ["Action", "Platform"]

    def test_filter_on_listed_facet_still_validated(self, built):
        with pytest.raises(InvalidFilterError):
            built.list_values(Facet.GENRE, [f(Facet.GENRE, 2)])

    def test_overflow_values_listed(self, built):
        listing = built.list_values(Facet.GENRE, [f(Facet.SYSTEM, SNES)])
        assert value_texts(listing) == ["Action", "Platform"]
        assert not listing.has_unknown

    def test_system_values(self, built):
        listing = built.list_values(Facet.SYSTEM, [f(Facet.GENRE, PLATFORM)])
        assert value_texts(listing) == [MD_SYSTEM, SNES_SYSTEM]

    def test_unknown_flag(self, built):
        listing = built.list_values(Facet.PUBLISHER)
        assert value_texts(listing) == ["Nintendo", "Sega Enterprises"]
        assert listing.has_unknown

    def test_substring(self, built):
        listing = built.list_values(Facet.REGION, substring="sonic")
        assert value_texts(listing) == ["Europe"]

    def test_no_matches(self, built):
        listing = built.list_values(Facet.GENRE, substring="zelda")
        assert listing.values == []
        assert not listing.has_unknown

    def test_values_are_a_subset_of_the_table(self, built):
        for facet in Facet:
            table = [v.text for v in built.index.table(facet).values]
            assert set(value_texts(built.list_values(facet))) <= set(table)


class TestResolveRecord:
    def test_resolve(self, built):
        resolved = built.resolve_record(SMW)
        assert resolved.path == "/roms/smw.sfc"
        assert resolved.label == "Super Mario World"
        assert resolved.playlist_path == "/pl/snes.lpl"
        assert resolved.entry_index == 0
        assert resolved.core_name == "Snes9x"

    def test_resolve_uses_override_title(self, built):
        resolved = built.resolve_record(DKC)
        assert resolved.title == "Super Donkey Kong"
        assert resolved.label == "Donkey Kong Country"

    @pytest.mark.parametrize("record_id", [-1, 4, 100])
    def test_unknown_id(self, built, record_id):
        with pytest.raises(RecordNotFoundError):
            built.resolve_record(record_id)

    def test_every_listed_record_resolves(self, built):
        for summary in built.list_records().records:
            assert built.resolve_record(summary.id).label == summary.label
