from __future__ import annotations

import logging
from typing import Optional

import httpx

from .advisor import CareerAdvisor
from .aggregator import OpportunityAggregator
from .config import AppConfig
from .dispatcher import ConversationDispatcher
from .ingestion import ResumeIngestionPipeline
from .llm import ChatCompletionClient
from .persistence import AssignmentStore, Database, FeedbackStore, ProfileStore
from .registration import RegistrationStateMachine
from .resume import DocumentStore
from .search import OpportunitySearchClient

logger = logging.getLogger(__name__)


def build_dispatcher(config: AppConfig, http_client: Optional[httpx.AsyncClient] = None) -> ConversationDispatcher:
    """Wire stores, gateways and the three core components from configuration."""
    config.ensure_directories()
    db = Database(config.resolved_database_url)
    db.create_all()

    profiles = ProfileStore(db)
    assignments = AssignmentStore(db)
    feedback = FeedbackStore(db)

    llm = None
    if config.llm_enabled:
        llm = ChatCompletionClient(
            config.openai_api_key,
            config.llm_model,
            base_url=config.openai_base_url,
            timeout=config.llm_timeout,
            client=http_client,
        )
    else:
        logger.warning("OPENAI_API_KEY is not set. AI features will be disabled.")

    search = OpportunitySearchClient(config.opportunity_api_url, timeout=config.search_timeout, client=http_client)
    return ConversationDispatcher(
        profiles=profiles,
        assignments=assignments,
        feedback=feedback,
        registration=RegistrationStateMachine(profiles),
        aggregator=OpportunityAggregator(search, assignments, concurrency=config.search_concurrency),
        pipeline=ResumeIngestionPipeline(DocumentStore(config.resumes_dir), profiles, llm),
        advisor=CareerAdvisor(profiles, assignments, llm),
    )
