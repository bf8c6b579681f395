"""Service container shared by the HTTP server, the tool-call endpoint and the CLI."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import TYPE_CHECKING

from reqtrack.auth import (
    AuthService,
    PasswordHasher,
    PATService,
    SecurityLogger,
    TokenCodec,
    UserService,
)
from reqtrack.comments import CommentService
from reqtrack.planning import (
    AcceptanceCriteriaService,
    ConfigService,
    EpicService,
    HierarchyService,
    RequirementService,
    UserStoryService,
    WorkflowValidator,
)
from reqtrack.search import SearchService
from reqtrack.store import Store

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

    from reqtrack.config import Config

__all__ = ["Services"]


@dataclass(frozen=True, slots=True)
class Services:
    """Every service, wired to one store.

    Build with ``Services.build``; the constructor takes the parts as-is.
    """

    config: Config
    store: Store
    workflow: WorkflowValidator
    comments: CommentService
    epics: EpicService
    user_stories: UserStoryService
    acceptance_criteria: AcceptanceCriteriaService
    requirements: RequirementService
    types: ConfigService
    hierarchy: HierarchyService
    search: SearchService
    users: UserService
    pats: PATService
    auth: AuthService

    @classmethod
    def build(
        cls,
        config: Config,
        *,
        logger: FilteringBoundLogger | None = None,
        security_logger: FilteringBoundLogger | None = None,
        store: Store | None = None,
    ) -> Services:
        """Wire every service for ``config``.

        Raises:
            ConfigError: If ``auth.secret`` is unset or too short.
        """
        store = store or Store(config.database.path, logger=logger)
        hasher = PasswordHasher()
        security = SecurityLogger(security_logger)
        workflow = WorkflowValidator(store)
        comments = CommentService(store, logger=logger)
        users = UserService(store, hasher=hasher, logger=logger)
        default_pat_ttl = (
            timedelta(days=config.auth.pat_default_ttl_days)
            if config.auth.pat_default_ttl_days
            else None
        )
        pats = PATService(store, security=security, default_ttl=default_pat_ttl)
        codec = TokenCodec(
            config.auth.secret, ttl=timedelta(seconds=config.auth.token_ttl_seconds)
        )
        auth = AuthService(
            store,
            users=users,
            pats=pats,
            codec=codec,
            hasher=hasher,
            security=security,
            refresh_ttl=timedelta(days=config.auth.refresh_ttl_days),
        )
        return cls(
            config=config,
            store=store,
            workflow=workflow,
            comments=comments,
            epics=EpicService(store, workflow, comments, logger=logger),
            user_stories=UserStoryService(store, workflow, comments, logger=logger),
            acceptance_criteria=AcceptanceCriteriaService(
                store, workflow, comments, logger=logger
            ),
            requirements=RequirementService(store, workflow, comments, logger=logger),
            types=ConfigService(store, logger=logger),
            hierarchy=HierarchyService(store),
            search=SearchService(store, logger=logger),
            users=users,
            pats=pats,
            auth=auth,
        )
