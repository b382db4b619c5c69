"""
Interview lifecycle: start -> answer* -> complete.

The orchestrator owns the sequencing between the session store, the LLM
provider and the stats exporter. Mutations of a single interview are
serialised with a per-interview lock, and the transcript always alternates
interviewer / candidate starting with an interviewer question.
"""
import logging
import threading
import weakref
from typing import Callable, List, Optional

from core import config
from core.exceptions import (
    ConflictError, InterviewClosedError, NotFoundError, ValidationError
)
from models.auth import User
from models.interview import AnswerResult, Interview, InterviewCreate, Message
from models.subject import StudyMaterial
from .llm import LLMProvider, get_llm_provider
from .llm.prompts import interview_context, is_subject_practice, project_system_prompt, subject_system_prompt
from .sheets_exporter import build_interview_stats
from .storage import Storage

logger = logging.getLogger(__name__)

ProviderFactory = Callable[[str, Optional[str]], LLMProvider]


class InterviewLocks:
    """
    One lock per interview id. Entries live only while some caller holds a
    reference to the lock, so idle interviews cost nothing.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks = weakref.WeakValueDictionary()

    def for_interview(self, interview_id: int) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(interview_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[interview_id] = lock
            return lock

    def __len__(self):
        return len(self._locks)


def build_materials_context(materials: List[StudyMaterial],
                            per_file_limit: int = None,
                            total_limit: int = None) -> str:
    """Concatenate study material text, truncating each file and then the whole."""
    per_file_limit = per_file_limit or config.MATERIAL_FILE_CHAR_LIMIT
    total_limit = total_limit or config.MATERIAL_TOTAL_CHAR_LIMIT

    parts = []
    for material in materials:
        if not material.content:
            continue
        parts.append(f"[{material.file_name}]\n{material.content[:per_file_limit]}")
    return "\n\n".join(parts)[:total_limit]


class InterviewOrchestrator:

    def __init__(self, storage: Storage, exporter=None, provider_factory: ProviderFactory = get_llm_provider):
        self.storage = storage
        self.exporter = exporter
        self.provider_factory = provider_factory
        self.locks = InterviewLocks()

    # ------------------------------------------------------------------ reads

    def get_interview(self, user: User, interview_id: int) -> Interview:
        interview = self.storage.get_interview(interview_id)
        if interview is None or not self._can_read(user, interview):
            raise NotFoundError("Interview not found")
        return interview

    def get_messages(self, user: User, interview_id: int) -> List[Message]:
        self.get_interview(user, interview_id)
        return self.storage.get_messages(interview_id)

    @staticmethod
    def _can_read(user: User, interview: Interview) -> bool:
        return interview.user_id == user.id or user.role == "admin"

    def _owned_interview(self, user: User, interview_id: int) -> Interview:
        interview = self.storage.get_interview(interview_id)
        if interview is None or interview.user_id != user.id:
            raise NotFoundError("Interview not found")
        return interview

    # ------------------------------------------------------------------ start

    def start_interview(self, user: User, payload: InterviewCreate) -> Interview:
        # Credential problems surface here, before any row is written
        provider = self.provider_factory(payload.provider, payload.api_key)

        subject_name = None
        materials = ""
        if payload.subject_id is not None:
            subject = self.storage.get_subject(payload.subject_id)
            if subject is None:
                raise NotFoundError("Subject not found")
            subject_name = subject.name
            materials = build_materials_context(
                self.storage.list_study_materials_by_subject(user.id, subject.id)
            )

        if is_subject_practice(payload.description, subject_name):
            system_prompt = subject_system_prompt(payload.title, payload.description, subject_name, materials)
        else:
            system_prompt = project_system_prompt(payload.title, payload.description, payload.link)

        interview = self.storage.create_interview(
            user_id=user.id,
            title=payload.title,
            description=payload.description,
            provider=payload.provider,
            link=payload.link,
            subject_id=payload.subject_id,
        )

        try:
            first_question = provider.generate_opening_question(system_prompt)
            self.storage.create_message(interview.id, "interviewer", first_question)
        except Exception:
            logger.warning(f"Rolling back interview {interview.id}: opening question failed")
            self.storage.delete_interview(interview.id)
            raise

        logger.info(f"Interview {interview.id} started by user {user.id} with {payload.provider}")
        return interview

    # ----------------------------------------------------------------- answer

    def submit_answer(self, user: User, interview_id: int, content: str,
                      api_key: Optional[str] = None) -> AnswerResult:
        if not content or not content.strip():
            raise ValidationError("Answer must not be empty", {"field": "content"})

        with self.locks.for_interview(interview_id):
            interview = self._owned_interview(user, interview_id)
            if interview.status != "in_progress":
                raise InterviewClosedError("Interview not found or already completed")

            provider = self.provider_factory(interview.provider, api_key)

            history = self.storage.get_messages(interview_id)
            if not history or history[-1].role != "interviewer":
                raise ConflictError("The interview is waiting for a question, not an answer")

            candidate_message = self.storage.create_message(interview_id, "candidate", content)
            try:
                analysis = provider.analyze_answer(
                    history,
                    content,
                    interview_context(interview.title, interview.description, interview.link),
                )
            except Exception:
                self.storage.delete_message(candidate_message.id)
                raise

            candidate_message = self.storage.update_message_feedback(candidate_message.id, analysis.feedback)
            next_message = self.storage.create_message(interview_id, "interviewer", analysis.next_question)

        logger.info(f"Interview {interview_id}: answer {candidate_message.id} rated {analysis.feedback.rating}/10")
        return AnswerResult(message=candidate_message, response=next_message, feedback=analysis.feedback)

    # --------------------------------------------------------------- complete

    def complete_interview(self, user: User, interview_id: int, api_key: Optional[str] = None) -> Interview:
        with self.locks.for_interview(interview_id):
            interview = self._owned_interview(user, interview_id)
            if interview.status == "completed":
                return interview

            provider = self.provider_factory(interview.provider, api_key)
            history = self.storage.get_messages(interview_id)

            summary = provider.generate_summary(history)
            summary.response_count = sum(1 for m in history if m.role == "candidate")

            completed = self.storage.complete_interview(interview_id, summary, summary.overall_score)

        logger.info(f"Interview {interview_id} completed with score {summary.overall_score}")
        self._export_stats(user, completed)
        return completed

    def _export_stats(self, user: User, interview: Interview) -> None:
        if self.exporter is None:
            return
        try:
            self.exporter.enqueue(build_interview_stats(interview, user))
        except Exception as e:
            logger.error(f"Could not queue stats export for interview {interview.id}: {e}")
