"""
Session store: users, subjects, interviews, messages, study materials and
app settings.

`Storage` is the interface the orchestrator and routers depend on.
`PostgresStorage` is the durable implementation (see schema.sql);
`MemoryStorage` keeps everything in process and backs the test suite.
"""
import logging
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Optional, List

from psycopg2.extras import RealDictCursor, Json

from models.auth import UserRecord
from models.interview import Interview, Message, FeedbackData, SummaryData
from models.subject import Subject, StudyMaterial
from .database import get_connection

logger = logging.getLogger(__name__)

PRESET_SUBJECTS = [
    {"name": "Data Structures", "icon": "Binary"},
    {"name": "Algorithms", "icon": "GitBranch"},
    {"name": "Database Systems", "icon": "Database"},
    {"name": "Operating Systems", "icon": "Cpu"},
    {"name": "Computer Networks", "icon": "Network"},
    {"name": "Machine Learning", "icon": "Brain"},
    {"name": "Web Development", "icon": "Globe"},
    {"name": "System Design", "icon": "Boxes"},
    {"name": "Object-Oriented Programming", "icon": "Code"},
    {"name": "Software Engineering", "icon": "Wrench"},
    {"name": "Computer Architecture", "icon": "HardDrive"},
    {"name": "Cybersecurity", "icon": "Shield"},
]


def utcnow() -> datetime:
    # Naive UTC, matching what psycopg2 returns for TIMESTAMP columns
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Storage(ABC):

    # Users
    @abstractmethod
    def create_user(self, email: str, password_hash: str, full_name: str, role: str = "student") -> UserRecord: ...

    @abstractmethod
    def get_user(self, user_id: int) -> Optional[UserRecord]: ...

    @abstractmethod
    def get_user_by_email(self, email: str) -> Optional[UserRecord]: ...

    @abstractmethod
    def list_users(self) -> List[UserRecord]: ...

    # Interviews
    @abstractmethod
    def create_interview(self, user_id: int, title: str, description: str, provider: str,
                         link: Optional[str] = None, subject_id: Optional[int] = None) -> Interview: ...

    @abstractmethod
    def get_interview(self, interview_id: int) -> Optional[Interview]: ...

    @abstractmethod
    def list_interviews_by_user(self, user_id: int) -> List[Interview]: ...

    @abstractmethod
    def list_interviews(self) -> List[Interview]: ...

    @abstractmethod
    def list_interviews_by_subject(self, user_id: int, subject_id: int) -> List[Interview]: ...

    @abstractmethod
    def complete_interview(self, interview_id: int, summary: SummaryData, score: int) -> Interview: ...

    @abstractmethod
    def delete_interview(self, interview_id: int) -> None: ...

    # Messages
    @abstractmethod
    def create_message(self, interview_id: int, role: str, content: str,
                       feedback: Optional[FeedbackData] = None) -> Message: ...

    @abstractmethod
    def update_message_feedback(self, message_id: int, feedback: FeedbackData) -> Message: ...

    @abstractmethod
    def delete_message(self, message_id: int) -> None: ...

    @abstractmethod
    def get_messages(self, interview_id: int) -> List[Message]: ...

    # Subjects
    @abstractmethod
    def list_subjects(self) -> List[Subject]: ...

    @abstractmethod
    def list_preset_subjects(self) -> List[Subject]: ...

    @abstractmethod
    def get_subject(self, subject_id: int) -> Optional[Subject]: ...

    @abstractmethod
    def create_subject(self, name: str, icon: Optional[str] = None, is_preset: bool = False) -> Subject: ...

    @abstractmethod
    def list_user_subjects(self, user_id: int) -> List[Subject]: ...

    @abstractmethod
    def add_user_subject(self, user_id: int, subject_id: int) -> None: ...

    @abstractmethod
    def remove_user_subject(self, user_id: int, subject_id: int) -> None: ...

    # Study materials
    @abstractmethod
    def create_study_material(self, user_id: int, subject_id: int, file_name: str,
                              file_type: str, content: Optional[str]) -> StudyMaterial: ...

    @abstractmethod
    def get_study_material(self, material_id: int) -> Optional[StudyMaterial]: ...

    @abstractmethod
    def list_study_materials_by_subject(self, user_id: int, subject_id: int) -> List[StudyMaterial]: ...

    @abstractmethod
    def list_study_materials_by_user(self, user_id: int) -> List[StudyMaterial]: ...

    @abstractmethod
    def delete_study_material(self, material_id: int) -> None: ...

    # Settings
    @abstractmethod
    def get_setting(self, key: str) -> Optional[str]: ...

    @abstractmethod
    def set_setting(self, key: str, value: str) -> None: ...

    def seed(self, admin_email: Optional[str] = None, admin_password_hash: Optional[str] = None,
             admin_name: str = "Administrator") -> None:
        """Insert preset subjects and the configured admin account when missing."""
        if not self.list_preset_subjects():
            for subject in PRESET_SUBJECTS:
                self.create_subject(subject["name"], subject["icon"], is_preset=True)
            logger.info(f"Seeded {len(PRESET_SUBJECTS)} preset subjects")

        if admin_email and admin_password_hash and not self.get_user_by_email(admin_email):
            self.create_user(admin_email, admin_password_hash, admin_name, role="admin")
            logger.info(f"Seeded admin account {admin_email}")


class MemoryStorage(Storage):
    """Dict-backed store. Every public method holds the instance lock."""

    def __init__(self):
        self._lock = threading.RLock()
        self._users = {}
        self._interviews = {}
        self._messages = {}
        self._subjects = {}
        self._user_subjects = set()
        self._materials = {}
        self._settings = {}
        self._ids = {}

    def _next_id(self, table: str) -> int:
        self._ids[table] = self._ids.get(table, 0) + 1
        return self._ids[table]

    # Users

    def create_user(self, email, password_hash, full_name, role="student"):
        with self._lock:
            user = UserRecord(
                id=self._next_id("users"),
                email=email,
                password_hash=password_hash,
                full_name=full_name,
                role=role,
                created_at=utcnow(),
            )
            self._users[user.id] = user
            return user.model_copy()

    def get_user(self, user_id):
        with self._lock:
            user = self._users.get(user_id)
            return user.model_copy() if user else None

    def get_user_by_email(self, email):
        with self._lock:
            for user in self._users.values():
                if user.email.lower() == email.lower():
                    return user.model_copy()
            return None

    def list_users(self):
        with self._lock:
            return sorted((u.model_copy() for u in self._users.values()),
                          key=lambda u: (u.created_at, u.id), reverse=True)

    # Interviews

    def create_interview(self, user_id, title, description, provider, link=None, subject_id=None):
        with self._lock:
            interview = Interview(
                id=self._next_id("interviews"),
                user_id=user_id,
                subject_id=subject_id,
                title=title,
                description=description,
                link=link or None,
                provider=provider,
                status="in_progress",
                created_at=utcnow(),
            )
            self._interviews[interview.id] = interview
            return interview.model_copy(deep=True)

    def get_interview(self, interview_id):
        with self._lock:
            interview = self._interviews.get(interview_id)
            return interview.model_copy(deep=True) if interview else None

    def _sorted_interviews(self, predicate):
        return sorted(
            (i.model_copy(deep=True) for i in self._interviews.values() if predicate(i)),
            key=lambda i: (i.created_at, i.id),
            reverse=True,
        )

    def list_interviews_by_user(self, user_id):
        with self._lock:
            return self._sorted_interviews(lambda i: i.user_id == user_id)

    def list_interviews(self):
        with self._lock:
            return self._sorted_interviews(lambda i: True)

    def list_interviews_by_subject(self, user_id, subject_id):
        with self._lock:
            return self._sorted_interviews(lambda i: i.user_id == user_id and i.subject_id == subject_id)

    def complete_interview(self, interview_id, summary, score):
        with self._lock:
            interview = self._interviews.get(interview_id)
            if interview is None:
                raise KeyError(f"Interview {interview_id} not found")
            interview.status = "completed"
            interview.summary = summary.model_copy(deep=True)
            interview.overall_score = score
            interview.completed_at = utcnow()
            return interview.model_copy(deep=True)

    def delete_interview(self, interview_id):
        with self._lock:
            self._interviews.pop(interview_id, None)
            for message_id in [m.id for m in self._messages.values() if m.interview_id == interview_id]:
                del self._messages[message_id]

    # Messages

    def create_message(self, interview_id, role, content, feedback=None):
        with self._lock:
            message = Message(
                id=self._next_id("messages"),
                interview_id=interview_id,
                role=role,
                content=content,
                feedback=feedback,
                created_at=utcnow(),
            )
            self._messages[message.id] = message
            return message.model_copy(deep=True)

    def update_message_feedback(self, message_id, feedback):
        with self._lock:
            message = self._messages.get(message_id)
            if message is None:
                raise KeyError(f"Message {message_id} not found")
            message.feedback = feedback.model_copy()
            return message.model_copy(deep=True)

    def delete_message(self, message_id):
        with self._lock:
            self._messages.pop(message_id, None)

    def get_messages(self, interview_id):
        with self._lock:
            return sorted(
                (m.model_copy(deep=True) for m in self._messages.values() if m.interview_id == interview_id),
                key=lambda m: (m.created_at, m.id),
            )

    # Subjects

    def list_subjects(self):
        with self._lock:
            return sorted((s.model_copy() for s in self._subjects.values()), key=lambda s: s.name)

    def list_preset_subjects(self):
        with self._lock:
            return sorted((s.model_copy() for s in self._subjects.values() if s.is_preset),
                          key=lambda s: s.name)

    def get_subject(self, subject_id):
        with self._lock:
            subject = self._subjects.get(subject_id)
            return subject.model_copy() if subject else None

    def create_subject(self, name, icon=None, is_preset=False):
        with self._lock:
            subject = Subject(
                id=self._next_id("subjects"),
                name=name,
                icon=icon or None,
                is_preset=is_preset,
                created_at=utcnow(),
            )
            self._subjects[subject.id] = subject
            return subject.model_copy()

    def list_user_subjects(self, user_id):
        with self._lock:
            ids = {sid for uid, sid in self._user_subjects if uid == user_id}
            return sorted((s.model_copy() for s in self._subjects.values() if s.id in ids),
                          key=lambda s: s.name)

    def add_user_subject(self, user_id, subject_id):
        with self._lock:
            self._user_subjects.add((user_id, subject_id))

    def remove_user_subject(self, user_id, subject_id):
        with self._lock:
            self._user_subjects.discard((user_id, subject_id))

    # Study materials

    def create_study_material(self, user_id, subject_id, file_name, file_type, content):
        with self._lock:
            material = StudyMaterial(
                id=self._next_id("study_materials"),
                user_id=user_id,
                subject_id=subject_id,
                file_name=file_name,
                file_type=file_type,
                content=content,
                created_at=utcnow(),
            )
            self._materials[material.id] = material
            return material.model_copy()

    def get_study_material(self, material_id):
        with self._lock:
            material = self._materials.get(material_id)
            return material.model_copy() if material else None

    def _sorted_materials(self, predicate):
        return sorted(
            (m.model_copy() for m in self._materials.values() if predicate(m)),
            key=lambda m: (m.created_at, m.id),
            reverse=True,
        )

    def list_study_materials_by_subject(self, user_id, subject_id):
        with self._lock:
            return self._sorted_materials(lambda m: m.user_id == user_id and m.subject_id == subject_id)

    def list_study_materials_by_user(self, user_id):
        with self._lock:
            return self._sorted_materials(lambda m: m.user_id == user_id)

    def delete_study_material(self, material_id):
        with self._lock:
            self._materials.pop(material_id, None)

    # Settings

    def get_setting(self, key):
        with self._lock:
            return self._settings.get(key)

    def set_setting(self, key, value):
        with self._lock:
            self._settings[key] = value


INTERVIEW_COLUMNS = """
    id, user_id, subject_id, title, description, link, provider, status,
    overall_score, summary, created_at, completed_at
"""
MESSAGE_COLUMNS = "id, interview_id, role, content, feedback, created_at"
USER_COLUMNS = "id, email, password_hash, full_name, role, created_at"
SUBJECT_COLUMNS = "id, name, icon, is_preset, created_at"
MATERIAL_COLUMNS = "id, user_id, subject_id, file_name, file_type, content, created_at"


class PostgresStorage(Storage):
    """psycopg2-backed store; one connection per operation."""

    def __init__(self, connection_factory=get_connection):
        self._connect = connection_factory

    @contextmanager
    def _cursor(self):
        conn = self._connect()
        cursor = conn.cursor(cursor_factory=RealDictCursor)
        try:
            yield cursor
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()
            conn.close()

    def _fetch_one(self, model, query, params=()):
        with self._cursor() as cursor:
            cursor.execute(query, params)
            row = cursor.fetchone()
        return model(**row) if row else None

    def _fetch_all(self, model, query, params=()):
        with self._cursor() as cursor:
            cursor.execute(query, params)
            rows = cursor.fetchall()
        return [model(**row) for row in rows]

    def _execute(self, query, params=()):
        with self._cursor() as cursor:
            cursor.execute(query, params)

    # Users

    def create_user(self, email, password_hash, full_name, role="student"):
        return self._fetch_one(UserRecord, f"""
            INSERT INTO users (email, password_hash, full_name, role)
            VALUES (%s, %s, %s, %s)
            RETURNING {USER_COLUMNS}
        """, (email, password_hash, full_name, role))

    def get_user(self, user_id):
        return self._fetch_one(UserRecord, f"SELECT {USER_COLUMNS} FROM users WHERE id = %s", (user_id,))

    def get_user_by_email(self, email):
        return self._fetch_one(UserRecord, f"SELECT {USER_COLUMNS} FROM users WHERE LOWER(email) = LOWER(%s)",
                               (email,))

    def list_users(self):
        return self._fetch_all(UserRecord, f"SELECT {USER_COLUMNS} FROM users ORDER BY created_at DESC, id DESC")

    # Interviews

    def create_interview(self, user_id, title, description, provider, link=None, subject_id=None):
        return self._fetch_one(Interview, f"""
            INSERT INTO interviews (user_id, subject_id, title, description, link, provider, status)
            VALUES (%s, %s, %s, %s, %s, %s, 'in_progress')
            RETURNING {INTERVIEW_COLUMNS}
        """, (user_id, subject_id, title, description, link or None, provider))

    def get_interview(self, interview_id):
        return self._fetch_one(Interview, f"SELECT {INTERVIEW_COLUMNS} FROM interviews WHERE id = %s",
                               (interview_id,))

    def list_interviews_by_user(self, user_id):
        return self._fetch_all(Interview, f"""
            SELECT {INTERVIEW_COLUMNS} FROM interviews
            WHERE user_id = %s
            ORDER BY created_at DESC, id DESC
        """, (user_id,))

    def list_interviews(self):
        return self._fetch_all(Interview, f"""
            SELECT {INTERVIEW_COLUMNS} FROM interviews
            ORDER BY created_at DESC, id DESC
        """)

    def list_interviews_by_subject(self, user_id, subject_id):
        return self._fetch_all(Interview, f"""
            SELECT {INTERVIEW_COLUMNS} FROM interviews
            WHERE user_id = %s AND subject_id = %s
            ORDER BY created_at DESC, id DESC
        """, (user_id, subject_id))

    def complete_interview(self, interview_id, summary, score):
        interview = self._fetch_one(Interview, f"""
            UPDATE interviews
            SET status = 'completed',
                summary = %s,
                overall_score = %s,
                completed_at = CURRENT_TIMESTAMP
            WHERE id = %s
            RETURNING {INTERVIEW_COLUMNS}
        """, (Json(summary.model_dump()), score, interview_id))
        if interview is None:
            raise KeyError(f"Interview {interview_id} not found")
        return interview

    def delete_interview(self, interview_id):
        self._execute("DELETE FROM interviews WHERE id = %s", (interview_id,))

    # Messages

    def create_message(self, interview_id, role, content, feedback=None):
        return self._fetch_one(Message, f"""
            INSERT INTO messages (interview_id, role, content, feedback)
            VALUES (%s, %s, %s, %s)
            RETURNING {MESSAGE_COLUMNS}
        """, (interview_id, role, content, Json(feedback.model_dump()) if feedback else None))

    def update_message_feedback(self, message_id, feedback):
        message = self._fetch_one(Message, f"""
            UPDATE messages SET feedback = %s
            WHERE id = %s
            RETURNING {MESSAGE_COLUMNS}
        """, (Json(feedback.model_dump()), message_id))
        if message is None:
            raise KeyError(f"Message {message_id} not found")
        return message

    def delete_message(self, message_id):
        self._execute("DELETE FROM messages WHERE id = %s", (message_id,))

    def get_messages(self, interview_id):
        return self._fetch_all(Message, f"""
            SELECT {MESSAGE_COLUMNS} FROM messages
            WHERE interview_id = %s
            ORDER BY created_at, id
        """, (interview_id,))

    # Subjects

    def list_subjects(self):
        return self._fetch_all(Subject, f"SELECT {SUBJECT_COLUMNS} FROM subjects ORDER BY name")

    def list_preset_subjects(self):
        return self._fetch_all(Subject, f"SELECT {SUBJECT_COLUMNS} FROM subjects WHERE is_preset ORDER BY name")

    def get_subject(self, subject_id):
        return self._fetch_one(Subject, f"SELECT {SUBJECT_COLUMNS} FROM subjects WHERE id = %s", (subject_id,))

    def create_subject(self, name, icon=None, is_preset=False):
        return self._fetch_one(Subject, f"""
            INSERT INTO subjects (name, icon, is_preset)
            VALUES (%s, %s, %s)
            RETURNING {SUBJECT_COLUMNS}
        """, (name, icon or None, is_preset))

    def list_user_subjects(self, user_id):
        return self._fetch_all(Subject, """
            SELECT s.id, s.name, s.icon, s.is_preset, s.created_at
            FROM subjects s
            JOIN user_subjects us ON us.subject_id = s.id
            WHERE us.user_id = %s
            ORDER BY s.name
        """, (user_id,))

    def add_user_subject(self, user_id, subject_id):
        self._execute("""
            INSERT INTO user_subjects (user_id, subject_id)
            VALUES (%s, %s)
            ON CONFLICT (user_id, subject_id) DO NOTHING
        """, (user_id, subject_id))

    def remove_user_subject(self, user_id, subject_id):
        self._execute("DELETE FROM user_subjects WHERE user_id = %s AND subject_id = %s", (user_id, subject_id))

    # Study materials

    def create_study_material(self, user_id, subject_id, file_name, file_type, content):
        return self._fetch_one(StudyMaterial, f"""
            INSERT INTO study_materials (user_id, subject_id, file_name, file_type, content)
            VALUES (%s, %s, %s, %s, %s)
            RETURNING {MATERIAL_COLUMNS}
        """, (user_id, subject_id, file_name, file_type, content))

    def get_study_material(self, material_id):
        return self._fetch_one(StudyMaterial, f"SELECT {MATERIAL_COLUMNS} FROM study_materials WHERE id = %s",
                               (material_id,))

    def list_study_materials_by_subject(self, user_id, subject_id):
        return self._fetch_all(StudyMaterial, f"""
            SELECT {MATERIAL_COLUMNS} FROM study_materials
            WHERE user_id = %s AND subject_id = %s
            ORDER BY created_at DESC, id DESC
        """, (user_id, subject_id))

    def list_study_materials_by_user(self, user_id):
        return self._fetch_all(StudyMaterial, f"""
            SELECT {MATERIAL_COLUMNS} FROM study_materials
            WHERE user_id = %s
            ORDER BY created_at DESC, id DESC
        """, (user_id,))

    def delete_study_material(self, material_id):
        self._execute("DELETE FROM study_materials WHERE id = %s", (material_id,))

    # Settings

    def get_setting(self, key):
        with self._cursor() as cursor:
            cursor.execute("SELECT value FROM app_settings WHERE key = %s", (key,))
            row = cursor.fetchone()
        return row["value"] if row else None

    def set_setting(self, key, value):
        self._execute("""
            INSERT INTO app_settings (key, value) VALUES (%s, %s)
            ON CONFLICT (key) DO UPDATE SET value = EXCLUDED.value
        """, (key, value))


def create_storage(backend: str) -> Storage:
    if backend == "memory":
        return MemoryStorage()
    if backend == "postgres":
        return PostgresStorage()
    raise ValueError(f"Unknown storage backend: {backend}")
