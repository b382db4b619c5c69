from .database import get_connection
from .storage import Storage, MemoryStorage, PostgresStorage, create_storage
from .orchestrator import InterviewOrchestrator
from .sheets_exporter import SheetsExporter, build_interview_stats
from .material_parser import extract_material_text
