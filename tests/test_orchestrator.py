import gc
import threading

import pytest
import requests

from core.exceptions import (
    ConflictError, InterviewClosedError, NotFoundError, ProviderCredentialError, ProviderError,
    ProviderUnreachableError, ValidationError
)
from models.interview import InterviewCreate
from services.llm import get_llm_provider
from services.llm import ollama as ollama_module
from services.orchestrator import InterviewLocks, InterviewOrchestrator, build_materials_context
from tests.fakes import FakeProvider, OPENING_QUESTION, RecordingExporter


def _payload(**overrides):
    data = {"title": "Shop API", "description": "An e-commerce backend", "provider": "gemini", "api_key": "key"}
    data.update(overrides)
    return InterviewCreate(**data)


def _assert_alternates(messages):
    assert messages[0].role == "interviewer"
    for previous, current in zip(messages, messages[1:]):
        assert previous.role != current.role


class TestStartInterview:

    def test_creates_interview_and_first_question(self, orchestrator, storage, user, provider_factory):
        interview = orchestrator.start_interview(user, _payload(link="https://github.com/x/shop"))

        assert interview.status == "in_progress"
        assert interview.user_id == user.id
        assert interview.link == "https://github.com/x/shop"
        assert provider_factory.calls == [("gemini", "key")]

        messages = storage.get_messages(interview.id)
        assert len(messages) == 1
        assert messages[0].role == "interviewer"
        assert messages[0].content == OPENING_QUESTION

    def test_project_template(self, orchestrator, user, fake_provider):
        orchestrator.start_interview(user, _payload())
        prompt, json_mode = fake_provider.prompts[0]
        assert json_mode is False
        assert "project-based interview" in prompt
        assert "Project Title: Shop API" in prompt
        assert prompt.endswith("Start the interview by asking the first question.")

    def test_subject_template_from_description(self, orchestrator, user, fake_provider):
        orchestrator.start_interview(user, _payload(title="Practice", description="Subject: Algorithms"))
        prompt, _ = fake_provider.prompts[0]
        assert "subject practice session" in prompt
        assert "Subject: Algorithms" in prompt

    def test_subject_materials_are_folded_in(self, orchestrator, storage, user, other_user, fake_provider):
        subject = storage.list_preset_subjects()[0]
        storage.create_study_material(user.id, subject.id, "notes.txt", "text/plain", "Heaps are trees.")
        storage.create_study_material(other_user.id, subject.id, "secret.txt", "text/plain", "Not mine.")

        interview = orchestrator.start_interview(
            user, _payload(title="Practice", description="Warm-up", subject_id=subject.id)
        )

        prompt, _ = fake_provider.prompts[0]
        assert interview.subject_id == subject.id
        assert f"Subject: {subject.name}" in prompt
        assert "[notes.txt]\nHeaps are trees." in prompt
        assert "Not mine." not in prompt

    def test_unknown_subject(self, orchestrator, storage, user):
        with pytest.raises(NotFoundError):
            orchestrator.start_interview(user, _payload(subject_id=9999))
        assert storage.list_interviews_by_user(user.id) == []

    def test_missing_credential_creates_nothing(self, storage, user, monkeypatch):
        from core import config
        monkeypatch.setattr(config, "GEMINI_API_KEY", "")
        orchestrator = InterviewOrchestrator(storage)

        with pytest.raises(ProviderCredentialError):
            orchestrator.start_interview(user, _payload(api_key=None))
        assert storage.list_interviews_by_user(user.id) == []

    def test_ollama_unreachable_leaves_no_interview(self, storage, user, monkeypatch):
        def refuse(*args, **kwargs):
            raise requests.exceptions.ConnectionError("connection refused")

        monkeypatch.setattr(ollama_module.requests, "post", refuse)
        orchestrator = InterviewOrchestrator(storage, provider_factory=get_llm_provider)

        with pytest.raises(ProviderUnreachableError):
            orchestrator.start_interview(
                user, _payload(title="Shop API", description="Subject: Algorithms", provider="ollama", api_key=None)
            )

        assert storage.list_interviews_by_user(user.id) == []
        assert [i for i in storage.list_interviews() if i.status == "in_progress"] == []


class TestSubmitAnswer:

    def test_returns_feedback_and_next_question(self, orchestrator, storage, user):
        interview = orchestrator.start_interview(user, _payload())

        result = orchestrator.submit_answer(user, interview.id, "We used sharding", "key")

        assert result.message.role == "candidate"
        assert result.message.content == "We used sharding"
        assert result.message.feedback == result.feedback
        assert result.feedback.rating == 8
        assert result.response.role == "interviewer"
        assert result.response.content == "How did you handle cross-shard transactions?"

        messages = storage.get_messages(interview.id)
        assert [m.role for m in messages] == ["interviewer", "candidate", "interviewer"]
        # feedback is persisted on the stored candidate message
        assert messages[1].feedback == result.feedback

    def test_history_and_context_reach_the_provider(self, orchestrator, user, fake_provider):
        interview = orchestrator.start_interview(user, _payload(link="https://example.com/shop"))
        orchestrator.submit_answer(user, interview.id, "We used sharding")

        prompt, json_mode = fake_provider.prompts[-1]
        assert json_mode is True
        assert "Project: Shop API - An e-commerce backend" in prompt
        assert "Link: https://example.com/shop" in prompt
        assert f"interviewer: {OPENING_QUESTION}" in prompt

    def test_malformed_reply_uses_fallback(self, orchestrator, user, fake_provider):
        interview = orchestrator.start_interview(user, _payload())
        fake_provider.replies = ["Great answer! I'd rate it 9 out of 10."]

        result = orchestrator.submit_answer(user, interview.id, "We used sharding")

        assert result.feedback.rating == 5
        assert result.feedback.explanation == "Could not parse AI feedback."
        assert result.response.content == "Could you elaborate on that?"

    def test_completed_interview_rejects_answers(self, orchestrator, storage, user):
        interview = orchestrator.start_interview(user, _payload())
        orchestrator.complete_interview(user, interview.id)
        before = storage.get_messages(interview.id)

        with pytest.raises(InterviewClosedError):
            orchestrator.submit_answer(user, interview.id, "We used sharding")

        assert storage.get_messages(interview.id) == before

    def test_closed_error_is_a_not_found(self):
        assert issubclass(InterviewClosedError, NotFoundError)

    def test_unknown_interview(self, orchestrator, user):
        with pytest.raises(NotFoundError):
            orchestrator.submit_answer(user, 12345, "hello")

    def test_other_users_interview(self, orchestrator, user, other_user):
        interview = orchestrator.start_interview(user, _payload())
        with pytest.raises(NotFoundError):
            orchestrator.submit_answer(other_user, interview.id, "hello")

    def test_blank_answer(self, orchestrator, user):
        interview = orchestrator.start_interview(user, _payload())
        with pytest.raises(ValidationError):
            orchestrator.submit_answer(user, interview.id, "   ")

    def test_two_answers_in_a_row_are_rejected(self, orchestrator, storage, user):
        interview = orchestrator.start_interview(user, _payload())
        storage.create_message(interview.id, "candidate", "a stray answer")

        with pytest.raises(ConflictError):
            orchestrator.submit_answer(user, interview.id, "another answer")

    def test_provider_failure_rolls_back_the_answer(self, orchestrator, storage, user, fake_provider):
        interview = orchestrator.start_interview(user, _payload())
        fake_provider.error = ProviderError("boom")

        with pytest.raises(ProviderError):
            orchestrator.submit_answer(user, interview.id, "We used sharding")

        messages = storage.get_messages(interview.id)
        assert [m.role for m in messages] == ["interviewer"]

    def test_concurrent_answers_keep_the_transcript_alternating(self, storage, user):
        provider = FakeProvider(delay=0.05)
        orchestrator = InterviewOrchestrator(storage, provider_factory=lambda kind, key=None: provider)
        interview = orchestrator.start_interview(user, _payload())

        errors = []

        def answer(text):
            try:
                orchestrator.submit_answer(user, interview.id, text)
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=answer, args=(f"answer {i}",)) for i in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        messages = storage.get_messages(interview.id)
        assert len(messages) == 9
        _assert_alternates(messages)


class TestCompleteInterview:

    def test_completes_with_summary(self, orchestrator, storage, user):
        interview = orchestrator.start_interview(user, _payload())
        orchestrator.submit_answer(user, interview.id, "We used sharding")
        orchestrator.submit_answer(user, interview.id, "Two-phase commit")

        completed = orchestrator.complete_interview(user, interview.id)

        assert completed.status == "completed"
        assert completed.completed_at is not None
        assert completed.overall_score == completed.summary.overall_score == 82
        assert completed.summary.strengths == ["Architecture", "Communication"]
        assert storage.get_interview(interview.id) == completed

    def test_response_count_is_counted_locally(self, orchestrator, user):
        interview = orchestrator.start_interview(user, _payload())
        orchestrator.submit_answer(user, interview.id, "We used sharding")

        completed = orchestrator.complete_interview(user, interview.id)

        # the canned reply claims 99 responses
        assert completed.summary.response_count == 1

    def test_malformed_summary_uses_fallback(self, orchestrator, user, fake_provider):
        interview = orchestrator.start_interview(user, _payload())
        fake_provider.replies = ["no json here"]

        completed = orchestrator.complete_interview(user, interview.id)

        assert completed.overall_score == 70
        assert completed.summary.strengths == ["Participation"]
        assert completed.summary.response_count == 0

    def test_second_call_returns_stored_result(self, orchestrator, user, fake_provider, exporter):
        interview = orchestrator.start_interview(user, _payload())
        first = orchestrator.complete_interview(user, interview.id)
        calls = len(fake_provider.prompts)

        second = orchestrator.complete_interview(user, interview.id)

        assert second == first
        assert len(fake_provider.prompts) == calls
        assert len(exporter.records) == 1

    def test_stats_are_queued_for_export(self, orchestrator, user, exporter):
        interview = orchestrator.start_interview(user, _payload())
        orchestrator.submit_answer(user, interview.id, "We used sharding")
        orchestrator.complete_interview(user, interview.id)

        assert len(exporter.records) == 1
        stats = exporter.records[0]
        assert stats.interview_id == interview.id
        assert stats.student_name == "Sam Student"
        assert stats.student_email == "student@example.com"
        assert stats.project_title == "Shop API"
        assert stats.overall_score == 82
        assert stats.response_count == 1
        assert stats.strengths == "Architecture; Communication"
        assert stats.revision_topics == "Distributed transactions"

    def test_exporter_failure_does_not_surface(self, storage, user, provider_factory):
        class BrokenExporter(RecordingExporter):
            def enqueue(self, stats):
                raise RuntimeError("queue is gone")

        orchestrator = InterviewOrchestrator(storage, exporter=BrokenExporter(), provider_factory=provider_factory)
        interview = orchestrator.start_interview(user, _payload())

        completed = orchestrator.complete_interview(user, interview.id)
        assert completed.status == "completed"

    def test_unknown_interview(self, orchestrator, user):
        with pytest.raises(NotFoundError):
            orchestrator.complete_interview(user, 4242)

    def test_provider_failure_leaves_interview_open(self, orchestrator, storage, user, fake_provider):
        interview = orchestrator.start_interview(user, _payload())
        fake_provider.error = ProviderError("boom")

        with pytest.raises(ProviderError):
            orchestrator.complete_interview(user, interview.id)
        assert storage.get_interview(interview.id).status == "in_progress"


class TestReads:

    def test_admin_can_read_any_interview(self, orchestrator, user, admin_user):
        interview = orchestrator.start_interview(user, _payload())
        assert orchestrator.get_interview(admin_user, interview.id).id == interview.id
        assert len(orchestrator.get_messages(admin_user, interview.id)) == 1

    def test_other_student_cannot(self, orchestrator, user, other_user):
        interview = orchestrator.start_interview(user, _payload())
        with pytest.raises(NotFoundError):
            orchestrator.get_messages(other_user, interview.id)


class TestInterviewLocks:

    def test_same_lock_while_held(self):
        locks = InterviewLocks()
        first = locks.for_interview(1)
        assert locks.for_interview(1) is first
        assert locks.for_interview(2) is not first

    def test_idle_locks_are_released(self, orchestrator, user):
        interview = orchestrator.start_interview(user, _payload())
        orchestrator.submit_answer(user, interview.id, "We used sharding")
        with pytest.raises(NotFoundError):
            orchestrator.submit_answer(user, 999, "hello")
        orchestrator.complete_interview(user, interview.id)

        gc.collect()
        assert len(orchestrator.locks) == 0


def test_materials_context_truncation(storage, user):
    subject = storage.list_preset_subjects()[0]
    for name in ("a.txt", "b.txt", "c.txt"):
        storage.create_study_material(user.id, subject.id, name, "text/plain", "x" * 100)
    storage.create_study_material(user.id, subject.id, "empty.txt", "text/plain", None)

    materials = storage.list_study_materials_by_subject(user.id, subject.id)
    context = build_materials_context(materials, per_file_limit=10, total_limit=40)

    assert len(context) == 40
    assert "x" * 11 not in context
    assert "empty.txt" not in context
