"""Tests for query_intent - keyword intent flags and element type."""

import pytest

from query_intent import ElementType, analyze_query_intent, detect_element_type


class TestIntentFlags:
    def test_list_and_count_together(self):
        intent = analyze_query_intent("list all business actors and count them")
        assert intent.wants_list
        assert intent.wants_count
        assert not intent.count_only

    def test_count_only(self):
        intent = analyze_query_intent("how many business actors")
        assert intent.wants_count
        assert not intent.wants_list
        assert intent.count_only

    def test_relationships_and_details(self):
        intent = analyze_query_intent("Describe the organizational hierarchy in detail")
        assert intent.wants_relationships
        assert intent.wants_details
        assert intent.element_type == ElementType.ACTOR

    def test_whole_words_only(self):
        # "account" must not trigger count, "install" must not trigger list
        intent = analyze_query_intent("which accounts did we install")
        assert not intent.wants_count
        assert not intent.wants_list

    def test_impact_flag(self):
        assert analyze_query_intent("what is affected if the CRM System changes").wants_impact_analysis
        assert analyze_query_intent("which data objects flow into the CRM System").wants_impact_analysis
        assert not analyze_query_intent("list business processes").wants_impact_analysis

    def test_to_dict(self):
        d = analyze_query_intent("count business functions").to_dict()
        assert d["element_type"] == "function"
        assert d["wants_count"] is True


class TestElementType:
    @pytest.mark.parametrize(
        "query,expected",
        [
            ("how many business actors", ElementType.ACTOR),
            ("list the departments", ElementType.ACTOR),
            ("show organizational units", ElementType.ACTOR),
            ("count business processes", ElementType.PROCESS),
            ("list business functions", ElementType.FUNCTION),
            ("what business services exist", ElementType.SERVICE),
            ("what is the impact of changing the CRM System", ElementType.IMPACT),
            ("what applications use the CRM System", ElementType.IMPACT),
            ("which data objects flow into the CRM System", ElementType.EXECUTION),
            ("give me an overview", ElementType.ALL),
        ],
    )
    def test_detection(self, query, expected):
        assert detect_element_type(query) == expected

    def test_first_match_wins(self):
        # actor phrases are checked before process phrases
        assert detect_element_type("which actors run which processes") == ElementType.ACTOR
        # impact phrases are checked before everything else
        assert detect_element_type("which processes are affected") == ElementType.IMPACT

    def test_element_type_compares_as_string(self):
        assert analyze_query_intent("count business processes").element_type == "process"
