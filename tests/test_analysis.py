import pytest

from storymine.analysis import Intent, classify_intent, extract_keywords
from storymine.analysis.intent import INTENT_SEARCH_TERMS


class TestExtractKeywords:
    def test_drops_stop_words_and_short_tokens(self):
        assert extract_keywords("What kind of stories do you have about the murder?") == ["murder"]

    def test_lowercases_and_keeps_first_occurrence_order(self):
        assert extract_keywords("Police BRIBES and police beatings, bribes trials") == [
            "police",
            "bribes",
            "beatings",
            "trials",
        ]

    def test_respects_max_keywords(self):
        text = "councilman vanished meeting downtown nineteen forty eight without trace"
        assert extract_keywords(text, max_keywords=3) == ["councilman", "vanished", "meeting"]

    def test_strips_apostrophes(self):
        assert extract_keywords("'zoology' department's records") == ["zoology", "department's", "records"]

    @pytest.mark.parametrize("text", ["", "   ", "hi a an the", "???"])
    def test_nothing_salient_gives_empty_list(self, text):
        assert extract_keywords(text) == []


class TestClassifyIntent:
    @pytest.mark.parametrize(
        "message,expected",
        [
            ("hi", Intent.GREETING),
            ("Hello there!", Intent.GREETING),
            ("  good   morning ", Intent.GREETING),
            ("What kind of stories do you have?", Intent.STORY_OVERVIEW),
            ("What do you have?", Intent.STORY_OVERVIEW),
            ("Were the police corrupt back then?", Intent.POLICE_CORRUPTION),
            ("what about murder", Intent.CRIME),
            ("Any homicides?", Intent.CRIME),
            ("Someone who disappeared", Intent.MISSING_PERSONS),
            ("a political scandal please", Intent.POLITICAL),
            ("returning veterans", Intent.MILITARY),
            ("good for a documentary", Intent.DOCUMENTARY),
            ("something dramatic", Intent.DRAMATIC),
            ("show me another one", Intent.ALTERNATIVE),
            ("yes, tell me more", Intent.EXPAND_CURRENT),
            ("xyzzy", Intent.GENERAL_EXPLORATION),
        ],
    )
    def test_cascade(self, message, expected):
        assert classify_intent(message) == expected

    def test_first_matching_rule_wins(self):
        # Mentions police corruption and murder; police corruption is checked first.
        assert classify_intent("police bribes covering up a murder") == Intent.POLICE_CORRUPTION

    @pytest.mark.parametrize(
        "message,expected",
        [
            ("What do you have on missing persons?", Intent.MISSING_PERSONS),
            ("What do you have about the 1948 murders?", Intent.CRIME),
            ("What kind of stories do you have about veterans?", Intent.MILITARY),
        ],
    )
    def test_topic_beats_overview_phrasing(self, message, expected):
        assert classify_intent(message) == expected

    def test_greeting_must_be_the_whole_message(self):
        assert classify_intent("hi, any murders?") == Intent.CRIME

    def test_word_rules_do_not_match_inside_words(self):
        assert classify_intent("yesterday's headlines") == Intent.GENERAL_EXPLORATION

    @pytest.mark.parametrize("message", [None, 42, ""])
    def test_unusable_input_is_general_exploration(self, message):
        assert classify_intent(message) == Intent.GENERAL_EXPLORATION

    def test_intent_values_are_stable_labels(self):
        assert Intent.CRIME.value == "seeking_crime_stories"
        assert INTENT_SEARCH_TERMS[Intent.CRIME] == ["murder"]
