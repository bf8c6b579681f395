"""Database schema and seed data.

The schema is idempotent (``IF NOT EXISTS`` everywhere) so ``initialize`` can
run on every startup. Entity tables feed a single FTS5 index through
triggers; the ``content`` column of the index holds the reference ID.
"""

SCHEMA_VERSION = 1

SCHEMA = """
CREATE TABLE IF NOT EXISTS schema_meta (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    username TEXT NOT NULL,
    email TEXT NOT NULL,
    password_hash TEXT NOT NULL,
    role TEXT NOT NULL CHECK (role IN ('Administrator', 'User', 'Commenter')),
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE UNIQUE INDEX IF NOT EXISTS ux_users_username ON users (username);
CREATE UNIQUE INDEX IF NOT EXISTS ux_users_email ON users (email);

CREATE TABLE IF NOT EXISTS requirement_types (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    description TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE UNIQUE INDEX IF NOT EXISTS ux_requirement_types_name ON requirement_types (name);

CREATE TABLE IF NOT EXISTS relationship_types (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    description TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE UNIQUE INDEX IF NOT EXISTS ux_relationship_types_name ON relationship_types (name);

CREATE TABLE IF NOT EXISTS epics (
    id TEXT PRIMARY KEY,
    reference_id TEXT NOT NULL,
    sequence_number INTEGER,
    creator_id TEXT NOT NULL REFERENCES users (id) ON DELETE RESTRICT,
    assignee_id TEXT REFERENCES users (id) ON DELETE RESTRICT,
    priority INTEGER NOT NULL CHECK (priority BETWEEN 1 AND 4),
    status TEXT NOT NULL,
    title TEXT NOT NULL CHECK (length(title) BETWEEN 1 AND 500),
    description TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE UNIQUE INDEX IF NOT EXISTS ux_epics_reference_id ON epics (reference_id);
CREATE INDEX IF NOT EXISTS ix_epics_creator ON epics (creator_id);
CREATE INDEX IF NOT EXISTS ix_epics_assignee ON epics (assignee_id);

CREATE TABLE IF NOT EXISTS user_stories (
    id TEXT PRIMARY KEY,
    reference_id TEXT NOT NULL,
    sequence_number INTEGER,
    epic_id TEXT NOT NULL REFERENCES epics (id) ON DELETE CASCADE,
    creator_id TEXT NOT NULL REFERENCES users (id) ON DELETE RESTRICT,
    assignee_id TEXT REFERENCES users (id) ON DELETE RESTRICT,
    priority INTEGER NOT NULL CHECK (priority BETWEEN 1 AND 4),
    status TEXT NOT NULL,
    title TEXT NOT NULL CHECK (length(title) BETWEEN 1 AND 500),
    description TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE UNIQUE INDEX IF NOT EXISTS ux_user_stories_reference_id ON user_stories (reference_id);
CREATE INDEX IF NOT EXISTS ix_user_stories_epic ON user_stories (epic_id);

CREATE TABLE IF NOT EXISTS acceptance_criteria (
    id TEXT PRIMARY KEY,
    reference_id TEXT NOT NULL,
    sequence_number INTEGER,
    user_story_id TEXT NOT NULL REFERENCES user_stories (id) ON DELETE CASCADE,
    author_id TEXT NOT NULL REFERENCES users (id) ON DELETE RESTRICT,
    description TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE UNIQUE INDEX IF NOT EXISTS ux_acceptance_criteria_reference_id
    ON acceptance_criteria (reference_id);
CREATE INDEX IF NOT EXISTS ix_acceptance_criteria_user_story
    ON acceptance_criteria (user_story_id);

CREATE TABLE IF NOT EXISTS requirements (
    id TEXT PRIMARY KEY,
    reference_id TEXT NOT NULL,
    sequence_number INTEGER,
    user_story_id TEXT NOT NULL REFERENCES user_stories (id) ON DELETE CASCADE,
    acceptance_criteria_id TEXT
        REFERENCES acceptance_criteria (id) ON DELETE SET NULL,
    type_id TEXT NOT NULL REFERENCES requirement_types (id) ON DELETE RESTRICT,
    creator_id TEXT NOT NULL REFERENCES users (id) ON DELETE RESTRICT,
    assignee_id TEXT REFERENCES users (id) ON DELETE RESTRICT,
    priority INTEGER NOT NULL CHECK (priority BETWEEN 1 AND 4),
    status TEXT NOT NULL,
    title TEXT NOT NULL CHECK (length(title) BETWEEN 1 AND 500),
    description TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE UNIQUE INDEX IF NOT EXISTS ux_requirements_reference_id ON requirements (reference_id);
CREATE INDEX IF NOT EXISTS ix_requirements_user_story ON requirements (user_story_id);
CREATE INDEX IF NOT EXISTS ix_requirements_acceptance_criteria
    ON requirements (acceptance_criteria_id);

CREATE TABLE IF NOT EXISTS requirement_relationships (
    id TEXT PRIMARY KEY,
    source_requirement_id TEXT NOT NULL REFERENCES requirements (id) ON DELETE CASCADE,
    target_requirement_id TEXT NOT NULL REFERENCES requirements (id) ON DELETE CASCADE,
    relationship_type_id TEXT NOT NULL
        REFERENCES relationship_types (id) ON DELETE RESTRICT,
    created_by TEXT NOT NULL REFERENCES users (id) ON DELETE RESTRICT,
    created_at TEXT NOT NULL,
    CHECK (source_requirement_id <> target_requirement_id)
);
CREATE UNIQUE INDEX IF NOT EXISTS ux_requirement_relationships_triplet
    ON requirement_relationships
    (source_requirement_id, target_requirement_id, relationship_type_id);
CREATE INDEX IF NOT EXISTS ix_requirement_relationships_target
    ON requirement_relationships (target_requirement_id);

CREATE TABLE IF NOT EXISTS comments (
    id TEXT PRIMARY KEY,
    entity_type TEXT NOT NULL CHECK (
        entity_type IN ('epic', 'user_story', 'acceptance_criteria', 'requirement')
    ),
    entity_id TEXT NOT NULL,
    parent_comment_id TEXT REFERENCES comments (id) ON DELETE CASCADE,
    author_id TEXT NOT NULL REFERENCES users (id) ON DELETE RESTRICT,
    content TEXT NOT NULL,
    is_resolved INTEGER NOT NULL DEFAULT 0,
    hidden INTEGER NOT NULL DEFAULT 0,
    linked_text TEXT,
    text_position_start INTEGER CHECK (text_position_start >= 0),
    text_position_end INTEGER,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    CHECK (text_position_end IS NULL OR text_position_end > text_position_start)
);
CREATE INDEX IF NOT EXISTS ix_comments_entity ON comments (entity_type, entity_id);
CREATE INDEX IF NOT EXISTS ix_comments_parent ON comments (parent_comment_id);

CREATE TABLE IF NOT EXISTS status_models (
    id TEXT PRIMARY KEY,
    entity_type TEXT NOT NULL CHECK (
        entity_type IN ('epic', 'user_story', 'acceptance_criteria', 'requirement')
    ),
    name TEXT NOT NULL,
    description TEXT,
    is_default INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE UNIQUE INDEX IF NOT EXISTS ux_status_models_entity_name
    ON status_models (entity_type, name);

CREATE TABLE IF NOT EXISTS statuses (
    id TEXT PRIMARY KEY,
    status_model_id TEXT NOT NULL REFERENCES status_models (id) ON DELETE CASCADE,
    name TEXT NOT NULL,
    description TEXT,
    color TEXT,
    is_initial INTEGER NOT NULL DEFAULT 0,
    is_final INTEGER NOT NULL DEFAULT 0,
    "order" INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE UNIQUE INDEX IF NOT EXISTS ux_statuses_model_name ON statuses (status_model_id, name);

CREATE TABLE IF NOT EXISTS status_transitions (
    id TEXT PRIMARY KEY,
    status_model_id TEXT NOT NULL REFERENCES status_models (id) ON DELETE CASCADE,
    from_status_id TEXT NOT NULL REFERENCES statuses (id) ON DELETE CASCADE,
    to_status_id TEXT NOT NULL REFERENCES statuses (id) ON DELETE CASCADE,
    name TEXT,
    description TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE UNIQUE INDEX IF NOT EXISTS ux_status_transitions_edge
    ON status_transitions (status_model_id, from_status_id, to_status_id);

CREATE TABLE IF NOT EXISTS refresh_tokens (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL REFERENCES users (id) ON DELETE CASCADE,
    token_hash TEXT NOT NULL,
    lookup_prefix TEXT NOT NULL,
    expires_at TEXT NOT NULL,
    last_used_at TEXT,
    created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS ix_refresh_tokens_lookup ON refresh_tokens (lookup_prefix);

CREATE TABLE IF NOT EXISTS personal_access_tokens (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL REFERENCES users (id) ON DELETE CASCADE,
    name TEXT NOT NULL,
    token_hash TEXT NOT NULL,
    prefix TEXT NOT NULL DEFAULT 'mcp_pat_',
    lookup_prefix TEXT NOT NULL,
    scopes TEXT NOT NULL DEFAULT '["full_access"]',
    expires_at TEXT,
    last_used_at TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE UNIQUE INDEX IF NOT EXISTS ux_personal_access_tokens_user_name
    ON personal_access_tokens (user_id, name);
CREATE INDEX IF NOT EXISTS ix_personal_access_tokens_lookup
    ON personal_access_tokens (lookup_prefix);

CREATE VIRTUAL TABLE IF NOT EXISTS search_index USING fts5 (
    entity_type UNINDEXED,
    entity_id UNINDEXED,
    title,
    description,
    content,
    tokenize = 'porter unicode61'
);
"""

# Trigger bodies are generated per table; acceptance criteria have no title.
_TITLED_TABLES = {
    "epics": "epic",
    "user_stories": "user_story",
    "requirements": "requirement",
}


def _search_triggers() -> str:
    statements: list[str] = []
    columns = {table: "NEW.title" for table in _TITLED_TABLES}
    columns["acceptance_criteria"] = "''"
    entity_types = {**_TITLED_TABLES, "acceptance_criteria": "acceptance_criteria"}

    for table, entity_type in entity_types.items():
        title = columns[table]
        insert_row = (
            "INSERT INTO search_index "
            "(entity_type, entity_id, title, description, content) "
            f"VALUES ('{entity_type}', NEW.id, {title}, "
            "coalesce(NEW.description, ''), NEW.reference_id);"
        )
        delete_row = (
            f"DELETE FROM search_index WHERE entity_type = '{entity_type}' "
            "AND entity_id = OLD.id;"
        )
        statements.append(
            f"CREATE TRIGGER IF NOT EXISTS {table}_search_ai AFTER INSERT ON {table} "
            f"BEGIN {insert_row} END;"
        )
        statements.append(
            f"CREATE TRIGGER IF NOT EXISTS {table}_search_au AFTER UPDATE ON {table} "
            f"BEGIN {delete_row} {insert_row} END;"
        )
        statements.append(
            f"CREATE TRIGGER IF NOT EXISTS {table}_search_ad AFTER DELETE ON {table} "
            f"BEGIN {delete_row} END;"
        )
    return "\n".join(statements)


SEARCH_TRIGGERS = _search_triggers()

DEFAULT_REQUIREMENT_TYPES: tuple[tuple[str, str], ...] = (
    ("Functional", "Functional requirements describing system behavior"),
    ("Non-Functional", "Quality attributes such as performance or security"),
    ("Business Rule", "Constraints imposed by business policy"),
    ("Interface", "Requirements on interfaces with external systems"),
    ("Data", "Requirements on data storage, format or retention"),
)

DEFAULT_RELATIONSHIP_TYPES: tuple[tuple[str, str], ...] = (
    ("depends_on", "Source requirement depends on target requirement"),
    ("blocks", "Source requirement blocks target requirement"),
    ("relates_to", "Source requirement is related to target requirement"),
    ("conflicts_with", "Source requirement conflicts with target requirement"),
    ("derives_from", "Source requirement is derived from target requirement"),
)

# (name, is_initial, is_final, color)
type StatusSeed = tuple[str, bool, bool, str]

_PLANNING_STATUSES: tuple[StatusSeed, ...] = (
    ("Backlog", True, False, "#6b7280"),
    ("Draft", False, False, "#9ca3af"),
    ("In Progress", False, False, "#3b82f6"),
    ("Done", False, True, "#10b981"),
    ("Cancelled", False, True, "#ef4444"),
)

DEFAULT_STATUS_MODELS: dict[str, tuple[StatusSeed, ...]] = {
    "epic": _PLANNING_STATUSES,
    "user_story": _PLANNING_STATUSES,
    "requirement": (
        ("Draft", True, False, "#9ca3af"),
        ("Active", False, False, "#10b981"),
        ("Obsolete", False, True, "#6b7280"),
    ),
}
