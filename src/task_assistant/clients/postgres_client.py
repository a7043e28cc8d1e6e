"""
Postgres-backed WorkItemStore and MentionStore.

Uses SQLAlchemy 2.0 async engine + asyncpg with raw SQL via ``text()``.

Tables:
- work_items (PK id, UNIQUE idempotency_key)
- mentions (PK id, UNIQUE (conversation, anchor_message_id, addressed_user))
- reminders (PK id)

Concurrency guarantees come from the database, not from locks:
- duplicate mention observations fail on the unique triple
- reply and escalation transitions are conditional UPDATEs on rows that are
  still unresolved, so at most one of them ever applies
- work item creation is ``ON CONFLICT (idempotency_key) DO NOTHING``
- reminder cancel and fire updates only match rows that are still active
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any
from urllib.parse import parse_qs, urlencode, urlparse, urlunparse

import sqlalchemy as sa
import structlog
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from ..errors import DuplicateMentionError, wrap_store_error
from ..models.mention import Mention, MentionObservation, MentionState
from ..models.reminder import Reminder, ReminderDraft
from ..models.work_item import (
    WorkItem,
    WorkItemDraft,
    WorkItemFilter,
    WorkItemStatus,
    utcnow,
)

logger = structlog.get_logger(__name__)

_UNIQUE_VIOLATION = '23505'

SCHEMA_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS work_items (
        id TEXT PRIMARY KEY,
        text TEXT NOT NULL,
        summary TEXT,
        origin_conversation TEXT NOT NULL,
        origin_message_id TEXT NOT NULL,
        created_by TEXT NOT NULL,
        assignee TEXT NOT NULL,
        due_at TIMESTAMPTZ,
        priority SMALLINT NOT NULL DEFAULT 2 CHECK (priority BETWEEN 1 AND 3),
        status TEXT NOT NULL DEFAULT 'open' CHECK (status IN ('open', 'completed')),
        completed_by TEXT,
        completed_at TIMESTAMPTZ,
        idempotency_key TEXT UNIQUE,
        created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        CHECK (status <> 'completed' OR (completed_at IS NOT NULL AND completed_by IS NOT NULL))
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS work_items_open_due_idx
        ON work_items (due_at) WHERE status = 'open'
    """,
    """
    CREATE TABLE IF NOT EXISTS mentions (
        id TEXT PRIMARY KEY,
        conversation TEXT NOT NULL,
        anchor_message_id TEXT NOT NULL,
        addressed_user TEXT NOT NULL,
        asking_user TEXT NOT NULL,
        text TEXT NOT NULL,
        detected_priority SMALLINT NOT NULL DEFAULT 2 CHECK (detected_priority BETWEEN 1 AND 3),
        recorded_at TIMESTAMPTZ NOT NULL DEFAULT now(),
        replied_at TIMESTAMPTZ,
        escalated_to_work_item BOOLEAN NOT NULL DEFAULT false,
        work_item_id TEXT REFERENCES work_items (id) ON DELETE SET NULL,
        UNIQUE (conversation, anchor_message_id, addressed_user)
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS mentions_unresolved_idx
        ON mentions (recorded_at)
        WHERE replied_at IS NULL AND escalated_to_work_item = false
    """,
    """
    CREATE TABLE IF NOT EXISTS reminders (
        id TEXT PRIMARY KEY,
        conversation TEXT NOT NULL,
        thread_anchor_id TEXT,
        created_by TEXT NOT NULL,
        target_user TEXT NOT NULL,
        message TEXT NOT NULL,
        fire_at TIMESTAMPTZ NOT NULL,
        interval_minutes INTEGER CHECK (interval_minutes IS NULL OR interval_minutes >= 1),
        status TEXT NOT NULL DEFAULT 'active'
            CHECK (status IN ('active', 'done', 'cancelled')),
        last_fired_at TIMESTAMPTZ,
        created_at TIMESTAMPTZ NOT NULL DEFAULT now()
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS reminders_active_fire_idx
        ON reminders (fire_at) WHERE status = 'active'
    """,
)

_WORK_ITEM_COLUMNS = (
    'id, text, summary, origin_conversation, origin_message_id, created_by, assignee, '
    'due_at, priority, status, completed_by, completed_at, idempotency_key, '
    'created_at, updated_at'
)

_MENTION_COLUMNS = (
    'id, conversation, anchor_message_id, addressed_user, asking_user, text, '
    'detected_priority, recorded_at, replied_at, escalated_to_work_item, work_item_id'
)

_REMINDER_COLUMNS = (
    'id, conversation, thread_anchor_id, created_by, target_user, message, '
    'fire_at, interval_minutes, status, last_fired_at, created_at'
)

_UNRESOLVED_CLAUSE = 'replied_at IS NULL AND escalated_to_work_item = false'

_MENTION_STATE_CLAUSES = {
    MentionState.UNRESOLVED: _UNRESOLVED_CLAUSE,
    MentionState.REPLIED: 'replied_at IS NOT NULL AND escalated_to_work_item = false',
    MentionState.ESCALATED: 'escalated_to_work_item = true',
}


def _to_pg_ts(val: datetime | str | None) -> datetime | None:
    """Ensure value is a datetime for asyncpg (which needs native types, not strings)."""
    if val is None:
        return None
    if isinstance(val, datetime):
        return val
    return datetime.fromisoformat(val)


def _sanitize_url(url: str) -> str:
    """Remove URL query params that asyncpg does not understand.

    Hosted Postgres URLs often include ``channel_binding`` and ``sslmode``,
    which are libpq parameters. asyncpg rejects unknown connection params;
    SSL is passed through ``connect_args`` instead.
    """
    _STRIP_PARAMS = {'channel_binding', 'sslmode'}
    parsed = urlparse(url)
    if not parsed.query:
        return url
    params = parse_qs(parsed.query)
    filtered = {k: v for k, v in params.items() if k not in _STRIP_PARAMS}
    new_query = urlencode(filtered, doseq=True)
    return urlunparse(parsed._replace(query=new_query))


def _is_unique_violation(exc: IntegrityError) -> bool:
    orig = getattr(exc, 'orig', None)
    if getattr(orig, 'sqlstate', None) == _UNIQUE_VIOLATION:
        return True
    message = str(exc).lower()
    return 'unique' in message or 'duplicate key' in message


def _row_to_work_item(row: Any) -> WorkItem:
    return WorkItem.model_validate(dict(row))


def _row_to_mention(row: Any) -> Mention:
    return Mention.model_validate(dict(row))


def _row_to_reminder(row: Any) -> Reminder:
    return Reminder.model_validate(dict(row))


class PostgresClient:
    """
    Async Postgres connection holder shared by both stores.

    Uses SQLAlchemy 2.0 async engine with asyncpg for raw SQL execution.
    """

    def __init__(self, database_url: str | None = None, require_ssl: bool = False):
        """
        Args:
            database_url: Postgres connection URL. ``postgres://`` and
                          ``postgresql://`` prefixes are rewritten to use asyncpg.
            require_ssl: Pass ``ssl='require'`` to asyncpg
        """
        self._engine: AsyncEngine | None = None
        self._database_url = database_url
        self._require_ssl = require_ssl

    async def connect(self, database_url: str | None = None) -> None:
        """Create the async engine. No-op if already connected."""
        if self._engine is not None:
            return

        url = database_url or self._database_url
        if not url:
            raise ValueError('database_url is required')

        url = _sanitize_url(url)

        if url.startswith('postgres://'):
            url = url.replace('postgres://', 'postgresql+asyncpg://', 1)
        elif url.startswith('postgresql://') and '+asyncpg' not in url:
            url = url.replace('postgresql://', 'postgresql+asyncpg://', 1)

        connect_args: dict[str, Any] = {'prepared_statement_cache_size': 0}
        if self._require_ssl:
            connect_args['ssl'] = 'require'

        self._engine = create_async_engine(
            url,
            pool_size=5,
            max_overflow=5,
            pool_pre_ping=True,
            pool_timeout=30,
            connect_args=connect_args,
        )
        logger.info('postgres_client.connected')

    async def close(self) -> None:
        """Dispose of the engine and connection pool."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            logger.info('postgres_client.closed')

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError('PostgresClient not connected; call connect() first')
        return self._engine

    async def verify_connectivity(self) -> bool:
        """Return True if we can execute a simple query."""
        try:
            async with self.engine.begin() as conn:
                await conn.execute(text('SELECT 1'))
            return True
        except Exception:
            logger.exception('postgres_client.connectivity_check_failed')
            return False

    async def setup_schema(self) -> None:
        """Create tables, constraints and indexes if they do not exist."""
        async with self.engine.begin() as conn:
            for statement in SCHEMA_STATEMENTS:
                await conn.execute(text(statement))
        logger.info('postgres_client.schema_ready')


class PostgresWorkItemStore:
    """WorkItemStore over the ``work_items`` table."""

    def __init__(self, client: PostgresClient):
        self.client = client

    # =========================================================================
    # Create / read
    # =========================================================================

    async def create(self, draft: WorkItemDraft, now: datetime | None = None) -> WorkItem:
        """
        INSERT a work item.

        Uses idempotency_key as the conflict target: when an item with the
        same key already exists, nothing is written and the existing row is
        returned.
        """
        item = draft.build(now)
        insert_sql = text(f"""
            INSERT INTO work_items ({_WORK_ITEM_COLUMNS})
            VALUES (
                :id, :text, :summary, :origin_conversation, :origin_message_id,
                :created_by, :assignee, :due_at, :priority, :status,
                :completed_by, :completed_at, :idempotency_key,
                :created_at, :updated_at
            )
            ON CONFLICT (idempotency_key) DO NOTHING
            RETURNING {_WORK_ITEM_COLUMNS}
        """)
        params: dict[str, Any] = {
            'id': item.id,
            'text': item.text,
            'summary': item.summary,
            'origin_conversation': item.origin_conversation,
            'origin_message_id': item.origin_message_id,
            'created_by': item.created_by,
            'assignee': item.assignee,
            'due_at': _to_pg_ts(item.due_at),
            'priority': int(item.priority),
            'status': item.status.value,
            'completed_by': None,
            'completed_at': None,
            'idempotency_key': item.idempotency_key,
            'created_at': _to_pg_ts(item.created_at),
            'updated_at': _to_pg_ts(item.updated_at),
        }

        try:
            async with self.client.engine.begin() as conn:
                result = await conn.execute(insert_sql, params)
                row = result.mappings().first()
                if row is None and item.idempotency_key is not None:
                    existing = await conn.execute(
                        text(
                            f'SELECT {_WORK_ITEM_COLUMNS} FROM work_items '
                            'WHERE idempotency_key = :key'
                        ),
                        {'key': item.idempotency_key},
                    )
                    row = existing.mappings().first()
                    logger.info(
                        'postgres_client.work_item_exists',
                        idempotency_key=item.idempotency_key,
                    )
        except SQLAlchemyError as e:
            raise wrap_store_error(e, {'operation': 'create_work_item'}) from e

        if row is None:
            raise wrap_store_error(
                RuntimeError('insert returned no row'),
                {'operation': 'create_work_item', 'idempotency_key': item.idempotency_key},
            )

        created = _row_to_work_item(row)
        logger.debug('postgres_client.create_work_item', work_item_id=created.id)
        return created

    async def get_by_id(self, item_id: str) -> WorkItem | None:
        sql = text(f'SELECT {_WORK_ITEM_COLUMNS} FROM work_items WHERE id = :id')
        rows = await self._fetch(sql, {'id': item_id}, 'get_work_item')
        return _row_to_work_item(rows[0]) if rows else None

    async def list(self, criteria: WorkItemFilter | None = None) -> list[WorkItem]:
        criteria = criteria or WorkItemFilter()
        clauses: list[str] = []
        params: dict[str, Any] = {}
        if criteria.status is not None:
            clauses.append('status = :status')
            params['status'] = WorkItemStatus(criteria.status).value
        if criteria.assignee is not None:
            clauses.append('assignee = :assignee')
            params['assignee'] = criteria.assignee
        if criteria.created_by is not None:
            clauses.append('created_by = :created_by')
            params['created_by'] = criteria.created_by
        if criteria.conversation is not None:
            clauses.append('origin_conversation = :conversation')
            params['conversation'] = criteria.conversation

        where = f"WHERE {' AND '.join(clauses)}" if clauses else ''
        sql = text(
            f'SELECT {_WORK_ITEM_COLUMNS} FROM work_items {where} '
            'ORDER BY due_at ASC NULLS LAST, created_at ASC'
        )
        rows = await self._fetch(sql, params, 'list_work_items')
        return [_row_to_work_item(r) for r in rows]

    async def list_upcoming(self, hours_ahead: float, now: datetime) -> list[WorkItem]:
        sql = text(f"""
            SELECT {_WORK_ITEM_COLUMNS} FROM work_items
            WHERE status = 'open' AND due_at >= :now AND due_at <= :until
            ORDER BY due_at ASC
        """)
        params = {'now': now, 'until': now + timedelta(hours=hours_ahead)}
        rows = await self._fetch(sql, params, 'list_upcoming')
        return [_row_to_work_item(r) for r in rows]

    async def list_overdue(self, now: datetime) -> list[WorkItem]:
        sql = text(f"""
            SELECT {_WORK_ITEM_COLUMNS} FROM work_items
            WHERE status = 'open' AND due_at < :now
            ORDER BY due_at ASC
        """)
        rows = await self._fetch(sql, {'now': now}, 'list_overdue')
        return [_row_to_work_item(r) for r in rows]

    # =========================================================================
    # Mutations
    # =========================================================================

    async def update(
        self,
        item_id: str,
        *,
        text: str | None = None,
        due_at: datetime | None = None,
        priority: int | None = None,
        assignee: str | None = None,
    ) -> WorkItem | None:
        changes: dict[str, Any] = {
            'text': text,
            'due_at': _to_pg_ts(due_at),
            'priority': int(priority) if priority is not None else None,
            'assignee': assignee,
        }
        changes = {k: v for k, v in changes.items() if v is not None}
        if not changes:
            return await self.get_by_id(item_id)

        assignments = ', '.join(f'{column} = :{column}' for column in changes)
        sql = sa.text(f"""
            UPDATE work_items SET {assignments}, updated_at = :updated_at
            WHERE id = :id
            RETURNING {_WORK_ITEM_COLUMNS}
        """)
        params = {**changes, 'id': item_id, 'updated_at': utcnow()}
        rows = await self._fetch(sql, params, 'update_work_item')
        return _row_to_work_item(rows[0]) if rows else None

    async def complete(
        self, item_id: str, completed_by: str, now: datetime | None = None
    ) -> WorkItem | None:
        """
        Complete an open item.

        The UPDATE only matches open rows, so a second completion leaves the
        first completed_by / completed_at untouched and is logged as a no-op.
        """
        completed_at = now or utcnow()
        sql = text(f"""
            UPDATE work_items
            SET status = 'completed', completed_by = :completed_by,
                completed_at = :completed_at, updated_at = :completed_at
            WHERE id = :id AND status = 'open'
            RETURNING {_WORK_ITEM_COLUMNS}
        """)
        rows = await self._fetch(
            sql,
            {'id': item_id, 'completed_by': completed_by, 'completed_at': completed_at},
            'complete_work_item',
        )
        if rows:
            logger.info('postgres_client.work_item_completed', work_item_id=item_id)
            return _row_to_work_item(rows[0])

        existing = await self.get_by_id(item_id)
        if existing is not None:
            logger.warning(
                'postgres_client.work_item_already_completed',
                work_item_id=item_id,
                completed_by=existing.completed_by,
            )
        return existing

    async def delete(self, item_id: str) -> bool:
        sql = text('DELETE FROM work_items WHERE id = :id RETURNING id')
        rows = await self._fetch(sql, {'id': item_id}, 'delete_work_item')
        if rows:
            logger.info('postgres_client.work_item_deleted', work_item_id=item_id)
        return bool(rows)

    async def _fetch(self, sql: Any, params: dict[str, Any], operation: str) -> list[Any]:
        try:
            async with self.client.engine.begin() as conn:
                result = await conn.execute(sql, params)
                return list(result.mappings().all())
        except SQLAlchemyError as e:
            raise wrap_store_error(e, {'operation': operation}) from e


class PostgresMentionStore:
    """MentionStore over the ``mentions`` table."""

    def __init__(self, client: PostgresClient):
        self.client = client

    async def insert(
        self, observation: MentionObservation, now: datetime | None = None
    ) -> Mention:
        """
        INSERT a mention.

        Raises:
            DuplicateMentionError: The (conversation, anchor, addressed user)
                triple was already recorded
            StoreError: Any other database failure
        """
        mention = observation.build(now)
        sql = text(f"""
            INSERT INTO mentions ({_MENTION_COLUMNS})
            VALUES (
                :id, :conversation, :anchor_message_id, :addressed_user, :asking_user,
                :text, :detected_priority, :recorded_at, NULL, false, NULL
            )
            RETURNING {_MENTION_COLUMNS}
        """)
        params: dict[str, Any] = {
            'id': mention.id,
            'conversation': mention.conversation,
            'anchor_message_id': mention.anchor_message_id,
            'addressed_user': mention.addressed_user,
            'asking_user': mention.asking_user,
            'text': mention.text,
            'detected_priority': int(mention.detected_priority),
            'recorded_at': _to_pg_ts(mention.recorded_at),
        }
        context = {
            'conversation': mention.conversation,
            'anchor_message_id': mention.anchor_message_id,
            'addressed_user': mention.addressed_user,
        }

        try:
            async with self.client.engine.begin() as conn:
                result = await conn.execute(sql, params)
                row = result.mappings().first()
        except IntegrityError as e:
            if _is_unique_violation(e):
                raise DuplicateMentionError('Mention already recorded', context=context) from e
            raise wrap_store_error(e, {'operation': 'insert_mention', **context}) from e
        except SQLAlchemyError as e:
            raise wrap_store_error(e, {'operation': 'insert_mention', **context}) from e

        return _row_to_mention(row) if row is not None else mention

    async def get_by_id(self, mention_id: str) -> Mention | None:
        sql = text(f'SELECT {_MENTION_COLUMNS} FROM mentions WHERE id = :id')
        rows = await self._fetch(sql, {'id': mention_id}, 'get_mention')
        return _row_to_mention(rows[0]) if rows else None

    async def update_reply_state(
        self,
        conversation: str,
        anchor_message_id: str,
        addressed_user: str,
        replied_at: datetime,
    ) -> list[Mention]:
        sql = text(f"""
            UPDATE mentions SET replied_at = :replied_at
            WHERE conversation = :conversation
              AND anchor_message_id = :anchor_message_id
              AND addressed_user = :addressed_user
              AND {_UNRESOLVED_CLAUSE}
            RETURNING {_MENTION_COLUMNS}
        """)
        params = {
            'conversation': conversation,
            'anchor_message_id': anchor_message_id,
            'addressed_user': addressed_user,
            'replied_at': replied_at,
        }
        rows = await self._fetch(sql, params, 'update_reply_state')
        return [_row_to_mention(r) for r in rows]

    async def mark_escalated(self, mention_id: str, work_item_id: str) -> bool:
        sql = text(f"""
            UPDATE mentions
            SET escalated_to_work_item = true, work_item_id = :work_item_id
            WHERE id = :id AND {_UNRESOLVED_CLAUSE}
            RETURNING id
        """)
        rows = await self._fetch(
            sql, {'id': mention_id, 'work_item_id': work_item_id}, 'mark_escalated'
        )
        return bool(rows)

    async def list_unresolved(self, older_than: datetime | None = None) -> list[Mention]:
        age_clause = 'AND recorded_at < :older_than' if older_than is not None else ''
        sql = text(f"""
            SELECT {_MENTION_COLUMNS} FROM mentions
            WHERE {_UNRESOLVED_CLAUSE} {age_clause}
            ORDER BY recorded_at ASC
        """)
        params = {'older_than': older_than} if older_than is not None else {}
        rows = await self._fetch(sql, params, 'list_unresolved')
        return [_row_to_mention(r) for r in rows]

    async def count_by(self, state: MentionState) -> int:
        sql = text(f'SELECT count(*) FROM mentions WHERE {_MENTION_STATE_CLAUSES[state]}')
        try:
            async with self.client.engine.begin() as conn:
                result = await conn.execute(sql)
                return int(result.scalar_one())
        except SQLAlchemyError as e:
            raise wrap_store_error(e, {'operation': 'count_mentions', 'state': state.value}) from e

    async def _fetch(self, sql: Any, params: dict[str, Any], operation: str) -> list[Any]:
        try:
            async with self.client.engine.begin() as conn:
                result = await conn.execute(sql, params)
                return list(result.mappings().all())
        except SQLAlchemyError as e:
            raise wrap_store_error(e, {'operation': operation}) from e


class PostgresReminderStore:
    """ReminderStore over the ``reminders`` table."""

    def __init__(self, client: PostgresClient):
        self.client = client

    async def create(self, draft: ReminderDraft, now: datetime | None = None) -> Reminder:
        reminder = draft.build(now)
        sql = text(f"""
            INSERT INTO reminders ({_REMINDER_COLUMNS})
            VALUES (
                :id, :conversation, :thread_anchor_id, :created_by, :target_user,
                :message, :fire_at, :interval_minutes, :status, NULL, :created_at
            )
            RETURNING {_REMINDER_COLUMNS}
        """)
        params: dict[str, Any] = {
            'id': reminder.id,
            'conversation': reminder.conversation,
            'thread_anchor_id': reminder.thread_anchor_id,
            'created_by': reminder.created_by,
            'target_user': reminder.target_user,
            'message': reminder.message,
            'fire_at': _to_pg_ts(reminder.fire_at),
            'interval_minutes': reminder.interval_minutes,
            'status': reminder.status.value,
            'created_at': _to_pg_ts(reminder.created_at),
        }
        rows = await self._fetch(sql, params, 'create_reminder')
        created = _row_to_reminder(rows[0]) if rows else reminder
        logger.debug('postgres_client.create_reminder', reminder_id=created.id)
        return created

    async def get_by_id(self, reminder_id: str) -> Reminder | None:
        sql = text(f'SELECT {_REMINDER_COLUMNS} FROM reminders WHERE id = :id')
        rows = await self._fetch(sql, {'id': reminder_id}, 'get_reminder')
        return _row_to_reminder(rows[0]) if rows else None

    async def list_active(self, conversation: str, created_by: str) -> list[Reminder]:
        sql = text(f"""
            SELECT {_REMINDER_COLUMNS} FROM reminders
            WHERE status = 'active' AND conversation = :conversation
              AND created_by = :created_by
            ORDER BY created_at ASC
        """)
        params = {'conversation': conversation, 'created_by': created_by}
        rows = await self._fetch(sql, params, 'list_active_reminders')
        return [_row_to_reminder(r) for r in rows]

    async def list_due(self, now: datetime) -> list[Reminder]:
        sql = text(f"""
            SELECT {_REMINDER_COLUMNS} FROM reminders
            WHERE status = 'active' AND fire_at <= :now
            ORDER BY fire_at ASC
        """)
        rows = await self._fetch(sql, {'now': now}, 'list_due_reminders')
        return [_row_to_reminder(r) for r in rows]

    async def cancel(self, reminder_id: str) -> bool:
        sql = text("""
            UPDATE reminders SET status = 'cancelled'
            WHERE id = :id AND status = 'active'
            RETURNING id
        """)
        rows = await self._fetch(sql, {'id': reminder_id}, 'cancel_reminder')
        if rows:
            logger.info('postgres_client.reminder_cancelled', reminder_id=reminder_id)
        return bool(rows)

    async def mark_fired(
        self, reminder_id: str, fired_at: datetime, next_fire_at: datetime | None
    ) -> bool:
        """
        Record a delivery in one conditional UPDATE.

        A one-shot reminder becomes done; a recurring one keeps its status
        and moves to ``next_fire_at``.
        """
        if next_fire_at is None:
            sql = text("""
                UPDATE reminders SET status = 'done', last_fired_at = :fired_at
                WHERE id = :id AND status = 'active'
                RETURNING id
            """)
            params: dict[str, Any] = {'id': reminder_id, 'fired_at': fired_at}
        else:
            sql = text("""
                UPDATE reminders SET fire_at = :next_fire_at, last_fired_at = :fired_at
                WHERE id = :id AND status = 'active'
                RETURNING id
            """)
            params = {'id': reminder_id, 'fired_at': fired_at, 'next_fire_at': next_fire_at}
        rows = await self._fetch(sql, params, 'mark_reminder_fired')
        return bool(rows)

    async def _fetch(self, sql: Any, params: dict[str, Any], operation: str) -> list[Any]:
        try:
            async with self.client.engine.begin() as conn:
                result = await conn.execute(sql, params)
                return list(result.mappings().all())
        except SQLAlchemyError as e:
            raise wrap_store_error(e, {'operation': operation}) from e
