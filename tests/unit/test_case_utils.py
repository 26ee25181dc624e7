"""Unit tests for payload key conversion."""

from utils.case_utils import to_camel_case, to_camel_key, to_snake_case, to_snake_key


class TestSnakeCase:
    def test_converts_camel_keys(self):
        assert to_snake_key("submissionImage") == "submission_image"
        assert to_snake_key("reference-url") == "reference_url"

    def test_recurses_into_nested_values(self):
        data = {"roomId": "r1", "items": [{"includeArtifacts": True}]}

        assert to_snake_case(data) == {"room_id": "r1", "items": [{"include_artifacts": True}]}


class TestCamelCase:
    def test_converts_snake_keys(self):
        assert to_camel_key("local_similarity_score") == "localSimilarityScore"
        assert to_camel_key("score") == "score"

    def test_non_string_keys_become_strings(self):
        assert to_camel_key(3) == "3"

    def test_recurses_into_nested_values(self):
        data = {"score_breakdown": {"contour_score": 90.0}, "side_by_side": "x"}

        assert to_camel_case(data) == {"scoreBreakdown": {"contourScore": 90.0}, "sideBySide": "x"}

    def test_round_trip_of_response_keys(self):
        keys = ["reference_substituted", "normalized_submission", "keypoint_score"]

        assert [to_snake_key(to_camel_key(key)) for key in keys] == keys
