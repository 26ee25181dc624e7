"""Integration tests for the scoring job envelope, registry and runner."""

import base64
import logging

import pytest
from pydantic import ValidationError

from config import reset_config
from jobs.envelope import JobEnvelope, build_job_envelope
from jobs.runner import JobRunner, failure_response
from jobs.types import JobType
from scoring.errors import DecodeError


def _data_uri(data: bytes) -> str:
    return "data:image/png;base64," + base64.b64encode(data).decode("ascii")


@pytest.fixture
def runner():
    return JobRunner(logger=logging.getLogger("tests.jobs"))


def _message(payload, job_id="job-1"):
    return build_job_envelope(job_type=JobType.SKETCH_SCORE, job_id=job_id, payload=payload)


class TestJobEnvelope:
    def test_payload_keys_converted_to_snake_case(self):
        """Clients send camelCase; handlers see snake_case."""
        envelope = JobEnvelope.from_message(
            {
                "type": JobType.SKETCH_SCORE,
                "id": "job-1",
                "payload": {"submissionImage": "abc", "referenceUrl": "/images/a.png"},
                "context": {"roomId": "r1"},
            }
        )

        assert envelope.job_id == "job-1"
        assert envelope.payload == {"submission_image": "abc", "reference_url": "/images/a.png"}
        assert envelope.context == {"room_id": "r1"}

    def test_type_hint_fills_missing_type(self):
        envelope = JobEnvelope.from_message(
            {"id": "job-2", "payload": {}}, job_type_hint=JobType.SKETCH_SCORE
        )

        assert envelope.job_type == JobType.SKETCH_SCORE

    def test_missing_fields_raises(self):
        """Type and id are named in the error."""
        with pytest.raises(ValueError, match="envelope fields: type, id"):
            JobEnvelope.from_message({"payload": {}})

    def test_non_object_message_rejected(self):
        with pytest.raises(ValueError, match="must be an object"):
            JobEnvelope.from_message(["not", "a", "dict"])

    def test_handler_payload_inherits_context_ids(self):
        """Room and submission IDs come from the context unless the payload sets them."""
        envelope = JobEnvelope.from_message(
            {
                "type": JobType.SKETCH_SCORE,
                "id": "job-3",
                "context": {"roomId": "room-ctx", "submissionId": "sub-ctx"},
                "payload": {"submissionImage": "abc", "submissionId": "sub-own"},
            }
        )

        payload = envelope.handler_payload()

        assert payload["room_id"] == "room-ctx"
        assert payload["submission_id"] == "sub-own"
        assert "room_id" not in envelope.payload

    def test_build_job_envelope_uses_aliases(self):
        message = build_job_envelope(job_type="t", job_id="j", payload={"a": 1})

        assert message == {"version": "v1", "type": "t", "id": "j", "payload": {"a": 1}}


class TestRunMessage:
    def test_scores_inline_images(self, runner, house_png):
        """Response is camelCase with inlined diagnostic data URIs."""
        # Arrange
        message = _message(
            {
                "submissionImage": _data_uri(house_png),
                "referenceImage": _data_uri(house_png),
                "difficulty": "hard",
                "submissionId": "sub-1",
                "roomId": "room-1",
            }
        )

        # Act
        response = runner.run_message(message, message_id="msg-1")

        # Assert
        assert response["score"] == pytest.approx(100.0, abs=0.01)
        assert response["difficulty"] == "hard"
        assert set(response["breakdown"]) == {
            "contourScore",
            "keypointScore",
            "localSimilarityScore",
            "compositeScore",
        }
        assert response["precision"] == 100.0
        assert response["recall"] == 100.0
        assert response["penalties"] == {"inkDensity": 1.0, "spatialExtra": 1.0}
        assert response["referenceSubstituted"] is False
        for key in ("heatmap", "sideBySide", "overlay", "normalizedReference", "normalizedSubmission"):
            assert response[key].startswith("data:image/png;base64,")

    def test_artifacts_can_be_omitted(self, runner, line_png):
        message = _message(
            {
                "submissionImage": _data_uri(line_png),
                "referenceImage": _data_uri(line_png),
                "includeArtifacts": False,
            }
        )

        response = runner.run_message(message, message_id="msg-2")

        assert "heatmap" not in response
        assert response["difficulty"] == "medium"

    def test_reference_url_resolved_under_root(self, runner, house_png, tmp_path, monkeypatch):
        """Locators resolve against SCORING_REFERENCE_ROOT."""
        # Arrange
        (tmp_path / "images").mkdir()
        (tmp_path / "images" / "house.png").write_bytes(house_png)
        monkeypatch.setenv("SCORING_REFERENCE_ROOT", str(tmp_path))
        reset_config()
        message = _message(
            {
                "submissionImage": _data_uri(house_png),
                "referenceUrl": "/images/house.png",
                "includeArtifacts": False,
            }
        )

        # Act
        response = runner.run_message(message, message_id="msg-3")

        # Assert
        assert response["referenceSubstituted"] is False
        assert response["score"] == pytest.approx(100.0, abs=0.01)

    def test_unknown_reference_url_is_substituted(self, runner, line_png, tmp_path, monkeypatch):
        monkeypatch.setenv("SCORING_REFERENCE_ROOT", str(tmp_path))
        reset_config()
        message = _message(
            {
                "submissionImage": _data_uri(line_png),
                "referenceUrl": "/images/missing.png",
                "includeArtifacts": False,
            }
        )

        response = runner.run_message(message, message_id="msg-4")

        assert response["referenceSubstituted"] is True

    def test_logs_reference_source(self, runner, line_png, caplog):
        """The handler records where the reference came from."""
        caplog.set_level(logging.DEBUG, logger="jobs.sketch_score")
        message = _message(
            {
                "submissionImage": _data_uri(line_png),
                "referenceImage": _data_uri(line_png),
                "difficulty": "easy",
                "includeArtifacts": False,
            },
            job_id="job-log",
        )

        runner.run_message(message, message_id="msg-log")

        messages = [r.getMessage() for r in caplog.records if r.name == "jobs.sketch_score"]
        assert messages == ["[job.reference] inline, difficulty easy (job-job-log)"]

    def test_payload_without_reference_rejected(self, runner, line_png):
        message = _message({"submissionImage": _data_uri(line_png)})

        with pytest.raises(ValidationError):
            runner.run_message(message, message_id="msg-5")

    def test_unexpected_payload_field_rejected(self, runner, line_png):
        message = _message(
            {
                "submissionImage": _data_uri(line_png),
                "referenceImage": _data_uri(line_png),
                "bonusPoints": 10,
            }
        )

        with pytest.raises(ValidationError):
            runner.run_message(message, message_id="msg-6")

    def test_bad_image_raises_decode_error(self, runner, line_png):
        message = _message(
            {"submissionImage": "data:image/png;base64,!!!", "referenceImage": _data_uri(line_png)}
        )

        with pytest.raises(DecodeError):
            runner.run_message(message, message_id="msg-7")

    def test_unsupported_job_type(self, runner):
        message = build_job_envelope(job_type="scoring.unknown", job_id="j", payload={})

        with pytest.raises(ValueError, match="Unsupported job type"):
            runner.run_message(message, message_id="msg-8")

    def test_job_type_hint_mismatch(self, runner):
        message = build_job_envelope(job_type="scoring.unknown", job_id="j", payload={})

        with pytest.raises(ValueError, match="mismatch"):
            runner.run_message(message, message_id="msg-9", job_type_hint=JobType.SKETCH_SCORE)


class TestRunBatch:
    def test_results_keep_input_order_and_isolate_failures(self, runner, house_png, line_png):
        """A failing job yields a zero-score response without affecting the others."""
        # Arrange
        messages = [
            (
                "msg-a",
                _message(
                    {
                        "submissionImage": _data_uri(house_png),
                        "referenceImage": _data_uri(house_png),
                        "includeArtifacts": False,
                    },
                    job_id="a",
                ),
            ),
            (
                "msg-b",
                _message(
                    {"submissionImage": "not-base64!", "referenceImage": _data_uri(line_png)},
                    job_id="b",
                ),
            ),
            (
                "msg-c",
                _message(
                    {
                        "submissionImage": _data_uri(line_png),
                        "referenceImage": _data_uri(line_png),
                        "includeArtifacts": False,
                    },
                    job_id="c",
                ),
            ),
        ]

        # Act
        results = runner.run_batch(messages, max_workers=3)

        # Assert
        assert results[0]["score"] == pytest.approx(100.0, abs=0.01)
        assert results[1]["score"] == 0.0
        assert results[1]["permanent"] is True
        assert results[1]["error"].startswith("DecodeError")
        assert results[2]["breakdown"]["keypointScore"] == 50.0

    def test_failure_response_shape(self):
        response = failure_response(OSError("disk"))

        assert response["score"] == 0.0
        assert response["breakdown"]["compositeScore"] == 0.0
        assert response["permanent"] is False
