from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List


DEFAULT_OPPORTUNITY_API_URL = "https://experts.ai/ai.unico.platform.rest/api/common/edumatch/318923/opportunity"
DEFAULT_OPENAI_BASE_URL = "https://api.openai.com/v1"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

PAGE_SIZE = 5
MAX_PAGES_PER_TERM = 3
MAX_REPLY_LENGTH = 2000
MAX_SELECTIONS = 5
CARD_TEXT_LIMIT = 500
ACCEPTED_DOCUMENT_SUFFIX = ".pdf"


@dataclass(slots=True)
class AppConfig:
    """Runtime configuration for the assistant."""

    data_dir: Path = Path("data")
    resumes_dir: Path = Path("resumes")
    database_url: str | None = None
    openai_api_key: str | None = None
    llm_model: str = "gpt-3.5-turbo"
    openai_base_url: str = DEFAULT_OPENAI_BASE_URL
    llm_timeout: float = 60.0
    opportunity_api_url: str = DEFAULT_OPPORTUNITY_API_URL
    search_timeout: float = 30.0
    search_concurrency: int = 4
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "AppConfig":
        data_dir = Path(os.getenv("DATA_DIR", "data"))
        return cls(
            data_dir=data_dir,
            resumes_dir=Path(os.getenv("RESUMES_DIR", "resumes")),
            database_url=os.getenv("DATABASE_URL") or None,
            openai_api_key=os.getenv("OPENAI_API_KEY") or None,
            llm_model=os.getenv("LLM_MODEL", "gpt-3.5-turbo"),
            openai_base_url=os.getenv("OPENAI_BASE_URL", DEFAULT_OPENAI_BASE_URL),
            llm_timeout=float(os.getenv("LLM_TIMEOUT", "60")),
            opportunity_api_url=os.getenv("OPPORTUNITY_API_URL", DEFAULT_OPPORTUNITY_API_URL),
            search_timeout=float(os.getenv("SEARCH_TIMEOUT", "30")),
            search_concurrency=int(os.getenv("SEARCH_CONCURRENCY", "4")),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )

    def ensure_directories(self) -> None:
        for path in self.directories():
            path.mkdir(parents=True, exist_ok=True)

    def directories(self) -> Iterable[Path]:
        return [self.data_dir, self.resumes_dir]

    @property
    def llm_enabled(self) -> bool:
        return bool(self.openai_api_key)

    @property
    def resolved_database_url(self) -> str:
        return self.database_url or f"sqlite:///{self.data_dir / 'jobify.db'}"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


SKILL_OPTIONS: Dict[str, str] = {
    "java": "Java",
    "python": "Python",
    "javascript": "JavaScript",
    "react": "React",
    "spring": "Spring Boot",
    "node": "Node.js",
    "cpp": "C++",
    "csharp": "C#",
    "aspnet": "ASP.NET",
    "sql": "SQL",
    "git": "Git",
    "docker": "Docker",
    "linux": "Linux",
    "os": "Operating Systems",
    "data_science": "Data Science",
    "ml": "Machine Learning",
    "dl": "Deep Learning",
    "recommender": "Recommender Systems",
    "customer_service": "Customer Service",
    "security": "Security",
    "explainability": "Explainability",
    "software_tool": "Software Tool",
    "memory": "Memory",
    "cache_storage": "Cache Storage",
}

POSITION_OPTIONS: Dict[str, str] = {
    "backend": "Backend",
    "frontend": "Frontend",
    "fullstack": "Full Stack",
    "mobile": "Mobile",
    "qa": "QA",
    "devops": "DevOps",
    "data": "Data Science",
}

MAIN_MENU_BUTTONS: List[str] = [
    "gpt_ask",
    "view_profile",
    "create_profile",
    "match_jobs",
    "delete_profile",
    "feedback",
]
