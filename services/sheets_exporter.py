"""
Best-effort export of completed-interview stats to a Google Sheet.

Records go onto a queue drained by one background worker thread, so the
HTTP response that completed the interview never waits on Google. Every
failure is logged and dropped.
"""
import logging
import queue
import threading
import time
from typing import Optional

import requests

from core import config
from models.auth import User
from models.interview import Interview, InterviewStats

logger = logging.getLogger(__name__)

SHEETS_API_URL = "https://sheets.googleapis.com/v4/spreadsheets"
SPREADSHEET_SETTING_KEY = "sheets_spreadsheet_id"

HEADER_ROW = [
    "Interview ID",
    "Student Name",
    "Student Email",
    "Project Title",
    "Start Time",
    "End Time",
    "Duration (mins)",
    "Overall Score",
    "Response Count",
    "Strengths",
    "Weaknesses",
    "Revision Topics",
]

_STOP = object()


def build_interview_stats(interview: Interview, user: User) -> InterviewStats:
    summary = interview.summary
    end = interview.completed_at or interview.created_at
    duration = max(0, round((end - interview.created_at).total_seconds() / 60))
    return InterviewStats(
        interview_id=interview.id,
        student_name=user.full_name,
        student_email=user.email,
        project_title=interview.title,
        start_time=interview.created_at.isoformat(),
        end_time=end.isoformat(),
        duration_minutes=duration,
        overall_score=interview.overall_score or 0,
        response_count=(summary.response_count or 0) if summary else 0,
        strengths="; ".join(summary.strengths) if summary else "",
        weaknesses="; ".join(summary.weaknesses) if summary else "",
        revision_topics="; ".join(summary.revision_topics) if summary else "",
    )


class SheetsClient:
    """Thin wrapper over the Sheets v4 REST API."""

    def __init__(self, access_token: str, timeout: float = None):
        self.access_token = access_token
        self.timeout = timeout or config.SHEETS_REQUEST_TIMEOUT_SECONDS

    def _headers(self):
        return {"Authorization": f"Bearer {self.access_token}", "Accept": "application/json"}

    def first_sheet_title(self, spreadsheet_id: str) -> str:
        response = requests.get(
            f"{SHEETS_API_URL}/{spreadsheet_id}",
            params={"fields": "sheets.properties.title"},
            headers=self._headers(),
            timeout=self.timeout,
        )
        response.raise_for_status()
        sheets = response.json().get("sheets") or []
        if sheets:
            return sheets[0].get("properties", {}).get("title", "Sheet1")
        return "Sheet1"

    def get_values(self, spreadsheet_id: str, cell_range: str) -> list:
        response = requests.get(
            f"{SHEETS_API_URL}/{spreadsheet_id}/values/{cell_range}",
            headers=self._headers(),
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json().get("values") or []

    def update_values(self, spreadsheet_id: str, cell_range: str, values: list) -> None:
        response = requests.put(
            f"{SHEETS_API_URL}/{spreadsheet_id}/values/{cell_range}",
            params={"valueInputOption": "USER_ENTERED"},
            json={"values": values},
            headers=self._headers(),
            timeout=self.timeout,
        )
        response.raise_for_status()

    def append_row(self, spreadsheet_id: str, cell_range: str, row: list) -> None:
        response = requests.post(
            f"{SHEETS_API_URL}/{spreadsheet_id}/values/{cell_range}:append",
            params={"valueInputOption": "USER_ENTERED"},
            json={"values": [row]},
            headers=self._headers(),
            timeout=self.timeout,
        )
        response.raise_for_status()


class SheetsExporter:
    """
    Queue + worker thread that appends InterviewStats rows to a spreadsheet.

    The spreadsheet id comes from configuration or from the stored setting and
    is resolved by `initialize()`, which runs on its own thread at startup and
    also writes the header row. Records queued before that finishes wait up to
    `init_timeout` seconds for it.
    """

    def __init__(self, client: Optional[SheetsClient] = None, storage=None,
                 spreadsheet_id: str = None, cell_range: str = None,
                 max_retries: int = None, retry_delay: float = None,
                 init_timeout: float = None, sleep=time.sleep):
        self.client = client
        self.storage = storage
        self.spreadsheet_id = spreadsheet_id or None
        self.cell_range = cell_range or config.GOOGLE_SHEETS_RANGE
        self.max_retries = max_retries if max_retries is not None else config.SHEETS_MAX_RETRIES
        self.retry_delay = retry_delay if retry_delay is not None else config.SHEETS_RETRY_DELAY_SECONDS
        self.init_timeout = init_timeout if init_timeout is not None else config.SHEETS_INIT_TIMEOUT_SECONDS
        self._sleep = sleep
        self._queue = queue.Queue()
        self._ready = threading.Event()
        self._worker = None

    @classmethod
    def from_config(cls, storage=None) -> "SheetsExporter":
        client = SheetsClient(config.GOOGLE_SHEETS_ACCESS_TOKEN) if config.GOOGLE_SHEETS_ACCESS_TOKEN else None
        return cls(client=client, storage=storage, spreadsheet_id=config.GOOGLE_SHEETS_SPREADSHEET_ID)

    @property
    def enabled(self) -> bool:
        return self.client is not None

    # ------------------------------------------------------------- lifecycle

    def start(self) -> None:
        if not self.enabled:
            logger.info("[GoogleSheets] No access token configured, stats export disabled")
            return
        if self._worker is not None and self._worker.is_alive():
            return
        threading.Thread(target=self.initialize, name="sheets-init", daemon=True).start()
        self._worker = threading.Thread(target=self._run, name="sheets-exporter", daemon=True)
        self._worker.start()

    def stop(self, timeout: float = 5.0) -> None:
        if self._worker is None:
            return
        self._queue.put(_STOP)
        self._worker.join(timeout)
        self._worker = None

    def initialize(self) -> None:
        """Resolve the spreadsheet id and make sure the header row exists."""
        try:
            if not self.spreadsheet_id and self.storage is not None:
                self.spreadsheet_id = self.storage.get_setting(SPREADSHEET_SETTING_KEY)
            if not self.spreadsheet_id:
                logger.error("[GoogleSheets] No spreadsheet id configured")
                return

            sheet_title = self.client.first_sheet_title(self.spreadsheet_id)
            logger.info(f"[GoogleSheets] Using sheet: {sheet_title}")
            self._remember_spreadsheet_id()
            header_range = f"{sheet_title}!A1:L1"
            if not self.client.get_values(self.spreadsheet_id, header_range):
                self.client.update_values(self.spreadsheet_id, header_range, [HEADER_ROW])
                logger.info("[GoogleSheets] Header row created")
            self._ready.set()
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            if status == 404:
                logger.error(f"[GoogleSheets] Spreadsheet {self.spreadsheet_id} not found or not accessible")
            elif status == 403:
                logger.error("[GoogleSheets] Permission denied. The account needs Editor access to the spreadsheet")
            else:
                logger.error(f"[GoogleSheets] Failed to ensure header row: {e}")
        except requests.RequestException as e:
            logger.error(f"[GoogleSheets] Failed to ensure header row: {e}")

    def _remember_spreadsheet_id(self) -> None:
        # Later restarts without GOOGLE_SHEETS_SPREADSHEET_ID reuse the same sheet
        if self.storage is None:
            return
        if self.storage.get_setting(SPREADSHEET_SETTING_KEY) != self.spreadsheet_id:
            self.storage.set_setting(SPREADSHEET_SETTING_KEY, self.spreadsheet_id)
            logger.info(f"[GoogleSheets] Stored spreadsheet id {self.spreadsheet_id}")

    # ---------------------------------------------------------------- export

    def enqueue(self, stats: InterviewStats) -> None:
        if not self.enabled:
            logger.debug(f"[GoogleSheets] Export disabled, dropping stats for interview {stats.interview_id}")
            return
        self._queue.put(stats)

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                self.export(item)
            finally:
                self._queue.task_done()

    def export(self, stats: InterviewStats) -> bool:
        """Append one row, retrying with linear backoff. Never raises."""
        if not self._ready.wait(self.init_timeout):
            logger.error(
                f"[GoogleSheets] Spreadsheet not ready after {self.init_timeout:g}s, "
                f"dropping stats for interview {stats.interview_id}"
            )
            return False

        for attempt in range(1, self.max_retries + 1):
            try:
                self.client.append_row(self.spreadsheet_id, self.cell_range, stats.as_row())
                logger.info(f"[GoogleSheets] Recorded stats for interview {stats.interview_id}")
                return True
            except Exception as e:
                logger.warning(
                    f"[GoogleSheets] Attempt {attempt}/{self.max_retries} failed for interview "
                    f"{stats.interview_id}: {e}"
                )
                if attempt < self.max_retries:
                    self._sleep(self.retry_delay * attempt)

        logger.error(f"[GoogleSheets] Giving up on stats for interview {stats.interview_id}")
        return False

    def join(self) -> None:
        """Block until every queued record has been handled."""
        self._queue.join()
