"""Tests for season-to-tenure reconciliation."""

import pytest

from nhl_ingest.normalization.tenures import TenureReconciler

from conftest import make_season


def spans(tenures):
    return [(t.team.canonical_name, t.start_year, t.end_year, t.is_active) for t in tenures]


class TestReconcile:
    def test_example_career_with_return_stint(self, empty_resolver):
        seasons = [
            make_season("20152016", "Alpha"),
            make_season("20162017", "Alpha"),
            make_season("20172018", "Beta"),
            make_season("20182019", "Alpha"),
        ]
        reconciler = TenureReconciler(empty_resolver, grace_years=1, current_year=2020)

        assert spans(reconciler.reconcile(seasons)) == [
            ("Alpha", 2015, 2017, False),
            ("Beta", 2017, 2018, False),
            ("Alpha", 2018, 2019, True),
        ]

    def test_adjacent_same_team_entries_merge(self, empty_resolver):
        seasons = [
            make_season("20102011", "Alpha"),
            make_season("20112012", "Alpha"),
            make_season("20122013", "Alpha"),
        ]
        tenures = TenureReconciler(empty_resolver, current_year=2024).reconcile(seasons)

        assert spans(tenures) == [("Alpha", 2010, 2013, False)]

    def test_regular_season_and_playoffs_of_one_year_merge(self, empty_resolver):
        seasons = [
            make_season("20102011", "Alpha", game_type=2),
            make_season("20102011", "Alpha", game_type=3),
        ]
        tenures = TenureReconciler(empty_resolver, current_year=2024).reconcile(seasons)

        assert spans(tenures) == [("Alpha", 2010, 2011, False)]

    def test_return_to_team_keeps_separate_stints(self, empty_resolver):
        seasons = [
            make_season("20002001", "Alpha"),
            make_season("20012002", "Beta"),
            make_season("20022003", "Alpha"),
            make_season("20032004", "Beta"),
        ]
        tenures = TenureReconciler(empty_resolver, current_year=2024).reconcile(seasons)

        assert [t.team.canonical_name for t in tenures] == ["Alpha", "Beta", "Alpha", "Beta"]
        assert sum(1 for t in tenures if t.team.canonical_name == "Alpha") == 2

    def test_unsorted_input_is_ordered_by_start_year(self, empty_resolver):
        seasons = [
            make_season("20182019", "Beta"),
            make_season("20152016", "Alpha"),
            make_season("20162017", "Alpha"),
        ]
        tenures = TenureReconciler(empty_resolver, current_year=2024).reconcile(seasons)

        assert spans(tenures) == [("Alpha", 2015, 2017, False), ("Beta", 2018, 2019, False)]

    def test_mid_season_trade_keeps_upstream_order(self, empty_resolver):
        seasons = [
            make_season("20192020", "Alpha"),
            make_season("20192020", "Beta"),
            make_season("20202021", "Beta"),
        ]
        tenures = TenureReconciler(empty_resolver, current_year=2024).reconcile(seasons)

        assert spans(tenures) == [("Alpha", 2019, 2020, False), ("Beta", 2019, 2021, False)]

    def test_no_adjacent_tenures_share_a_team(self, resolver):
        seasons = [
            make_season("20102011", "Boston Bruins", 6),
            make_season("20112012", "Boston Bruins", 6, game_type=3),
            make_season("20122013", "New York Rangers", 10),
            make_season("20132014", "Boston Bruins", 6),
            make_season("20142015", "Boston Bruins", 6),
        ]
        tenures = TenureReconciler(resolver, current_year=2024).reconcile(seasons)

        for previous, current in zip(tenures, tenures[1:]):
            assert previous.team.key != current.team.key
            assert previous.start_year <= current.start_year

    def test_relocated_franchise_merges_under_current_identity(self, resolver):
        seasons = [
            make_season("19951996", "Hartford Whalers", 26),
            make_season("19961997", "Hartford Whalers", 26),
            make_season("19971998", "Carolina Hurricanes", 26),
        ]
        tenures = TenureReconciler(resolver, current_year=2024).reconcile(seasons)

        assert spans(tenures) == [("Carolina Hurricanes", 1995, 1998, False)]
        assert tenures[0].team.team_abbrev == "CAR"


class TestFiltering:
    def test_drops_other_leagues_game_types_and_bad_rows(self, empty_resolver):
        seasons = [
            make_season("20102011", "Providence Bruins", league="AHL"),
            make_season("20102011", "Alpha", game_type=1),
            make_season("2010201", "Alpha"),
            make_season("20102011", None),
            make_season("20112012", ""),
            {"season": "2011abcd", "gameTypeId": 2, "leagueAbbrev": "NHL", "teamName": "Alpha"},
            "not a season row",
            make_season("20122013", "Alpha"),
        ]
        tenures = TenureReconciler(empty_resolver, current_year=2024).reconcile(seasons)

        assert spans(tenures) == [("Alpha", 2012, 2013, False)]

    def test_reversed_season_years_are_discarded(self, empty_resolver):
        tenures = TenureReconciler(empty_resolver, current_year=2024).reconcile(
            [make_season("20132012", "Alpha")]
        )
        assert tenures == []

    def test_target_league_is_configurable(self, empty_resolver):
        seasons = [make_season("20102011", "Providence Bruins", league="AHL")]
        tenures = TenureReconciler(
            empty_resolver, target_league="AHL", current_year=2024
        ).reconcile(seasons)

        assert spans(tenures) == [("Providence Bruins", 2010, 2011, False)]

    @pytest.mark.parametrize("seasons", [None, [], [make_season("20102011", "A", league="KHL")]])
    def test_no_usable_seasons_gives_no_tenures(self, empty_resolver, seasons):
        assert TenureReconciler(empty_resolver, current_year=2024).reconcile(seasons) == []


class TestActiveWindow:
    @pytest.mark.parametrize(
        "end_year,expected",
        [(2024, True), (2023, True), (2022, False), (2025, False)],
    )
    def test_one_year_grace(self, empty_resolver, end_year, expected):
        reconciler = TenureReconciler(empty_resolver, grace_years=1, current_year=2024)
        assert reconciler.is_active(end_year) is expected

    def test_grace_window_is_configurable(self, empty_resolver):
        reconciler = TenureReconciler(empty_resolver, grace_years=0, current_year=2024)
        assert reconciler.is_active(2024) is True
        assert reconciler.is_active(2023) is False

    def test_default_current_year_is_today(self, empty_resolver):
        from datetime import date

        reconciler = TenureReconciler(empty_resolver)
        assert reconciler.current_year == date.today().year
