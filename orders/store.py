"""
Durable order storage backed by SQLAlchemy.

Two tables with referential integrity:

    orders       (id, customer_name, customer_email, status, total_amount,
                  created_at, updated_at)
    order_items  (id, order_id -> orders.id ON DELETE CASCADE, product_id,
                  product_name, quantity > 0, price, created_at)

Design decisions:
- The store owns the engine (connection pool); create_schema() on startup,
  dispose() on shutdown
- transaction() is the unit of work: commit on success, full rollback on
  any exception, SQLAlchemy failures re-raised as StorageError
- Reads return pydantic Order models, never live ORM objects
- Status updates are a single UPDATE statement; an optional expected
  status turns it into compare-and-set
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable, Iterator, Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    create_engine,
    delete,
    event,
    select,
    text,
    update,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import (
    DeclarativeBase,
    Mapped,
    Session,
    mapped_column,
    relationship,
    selectinload,
    sessionmaker,
)
from sqlalchemy.pool import StaticPool

from orders.validator import ValidatedItem
from shared.config import Settings
from shared.errors import StorageError, TransitionConflictError
from shared.models import Order, OrderStatus

logger = logging.getLogger("order_store")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Schema
# =============================================================================

class Base(DeclarativeBase):
    pass


class OrderRecord(Base):
    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    customer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    customer_email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    status: Mapped[str] = mapped_column(
        String(50), nullable=False, default=OrderStatus.PENDING.value, index=True
    )
    total_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    items: Mapped[list["OrderItemRecord"]] = relationship(
        back_populates="order",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="OrderItemRecord.id",
    )


class OrderItemRecord(Base):
    __tablename__ = "order_items"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_order_items_quantity_positive"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[int] = mapped_column(
        ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    product_id: Mapped[int] = mapped_column(Integer, nullable=False)
    product_name: Mapped[str] = mapped_column(String(255), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)

    order: Mapped[OrderRecord] = relationship(back_populates="items")


@dataclass(frozen=True)
class NewOrder:
    """Header values for an order about to be inserted."""
    customer_name: str
    customer_email: str
    total_amount: Decimal
    status: OrderStatus = OrderStatus.PENDING


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite ignores REFERENCES clauses unless asked per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


# =============================================================================
# Store
# =============================================================================

class OrderStore:
    """
    Order persistence with an explicit transactional scope.

    Example:
        store = OrderStore.from_url("sqlite:///./orders.db")
        store.create_schema()

        with store.transaction() as session:
            order_id = store.add_order(session, header, items)

        store.get_by_id(order_id)
        store.dispose()
    """

    def __init__(self, engine: Engine):
        self.engine = engine
        if engine.dialect.name == "sqlite":
            event.listen(engine, "connect", _enable_sqlite_foreign_keys)
        self._sessions = sessionmaker(bind=engine, expire_on_commit=False)

    @classmethod
    def from_url(
        cls,
        url: str,
        pool_size: int = 20,
        pool_timeout: float = 2.0,
    ) -> "OrderStore":
        """Build the store and its connection pool for a database URL."""
        kwargs: dict = {"pool_pre_ping": True}
        if url.startswith("sqlite"):
            kwargs["connect_args"] = {"check_same_thread": False}
            if url in ("sqlite://", "sqlite:///:memory:"):
                # One shared connection, otherwise every checkout sees a fresh empty database
                kwargs["poolclass"] = StaticPool
        else:
            kwargs.update(pool_size=pool_size, pool_timeout=pool_timeout, pool_recycle=1800)
        return cls(create_engine(url, **kwargs))

    @classmethod
    def from_settings(cls, settings: Settings) -> "OrderStore":
        return cls.from_url(
            settings.database_url,
            pool_size=settings.db_pool_size,
            pool_timeout=settings.db_pool_timeout,
        )

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def create_schema(self) -> None:
        try:
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as e:
            logger.critical(f"Database initialization failed: {e}")
            raise StorageError("Database initialization failed") from e
        logger.info("Database schema ready")

    def dispose(self) -> None:
        """Release every pooled connection."""
        self.engine.dispose()

    def ping(self) -> bool:
        try:
            with self.engine.connect() as connection:
                connection.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logger.error(f"Database ping failed: {e}")
            return False

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """
        Unit of work: everything done with the yielded session commits
        together or not at all.
        """
        session = self._sessions()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Transaction rolled back: {e}")
            raise StorageError("Database operation failed") from e
        except BaseException:
            session.rollback()
            raise
        finally:
            session.close()

    # =========================================================================
    # Writes
    # =========================================================================

    def add_order(
        self,
        session: Session,
        header: NewOrder,
        items: Iterable[ValidatedItem],
    ) -> int:
        """
        Insert the header and every item inside the caller's transaction.

        Returns the new order id. Nothing is visible to other readers until
        the surrounding transaction commits.
        """
        now = _utcnow()
        record = OrderRecord(
            customer_name=header.customer_name,
            customer_email=header.customer_email,
            status=header.status.value,
            total_amount=header.total_amount,
            created_at=now,
            updated_at=now,
        )
        session.add(record)
        session.flush()

        for item in items:
            session.add(self._item_record(record.id, item, now))
        session.flush()

        return record.id

    def _item_record(self, order_id: int, item: ValidatedItem, created_at: datetime) -> OrderItemRecord:
        return OrderItemRecord(
            order_id=order_id,
            product_id=item.product_id,
            product_name=item.product_name,
            quantity=item.quantity,
            price=item.price,
            created_at=created_at,
        )

    def create_order(self, header: NewOrder, items: Iterable[ValidatedItem]) -> Order:
        """Atomically insert an order with its items and return it as committed."""
        with self.transaction() as session:
            order_id = self.add_order(session, header, items)
        return self.get_by_id(order_id)

    def update_status(
        self,
        order_id: int,
        status: OrderStatus,
        expected_status: Optional[OrderStatus] = None,
    ) -> Optional[Order]:
        """
        Set an order's status in one statement.

        Returns None if the order does not exist. With expected_status the
        update only applies if the stored status still matches, otherwise
        TransitionConflictError is raised.
        """
        stmt = update(OrderRecord).where(OrderRecord.id == order_id)
        if expected_status is not None:
            stmt = stmt.where(OrderRecord.status == expected_status.value)
        stmt = stmt.values(status=status.value, updated_at=_utcnow())

        with self.transaction() as session:
            result = session.execute(stmt)
            if result.rowcount == 0:
                exists = session.scalar(select(OrderRecord.id).where(OrderRecord.id == order_id))
                if exists is None:
                    return None
                raise TransitionConflictError(
                    f"Order {order_id} is no longer {expected_status.value}; status was changed concurrently"
                )

        return self.get_by_id(order_id)

    def delete(self, order_id: int) -> bool:
        """Delete an order; the database cascades the delete to its items."""
        with self.transaction() as session:
            result = session.execute(delete(OrderRecord).where(OrderRecord.id == order_id))
            return result.rowcount > 0

    # =========================================================================
    # Reads
    # =========================================================================

    def get_by_id(self, order_id: int) -> Optional[Order]:
        with self.transaction() as session:
            record = session.get(
                OrderRecord, order_id, options=[selectinload(OrderRecord.items)]
            )
            return Order.model_validate(record) if record is not None else None

    def list(
        self,
        status: Optional[OrderStatus] = None,
        customer_email: Optional[str] = None,
    ) -> list[Order]:
        """Orders matching the filters, newest first, items included."""
        stmt = select(OrderRecord).options(selectinload(OrderRecord.items))
        if status is not None:
            stmt = stmt.where(OrderRecord.status == status.value)
        if customer_email is not None:
            stmt = stmt.where(OrderRecord.customer_email == customer_email)
        stmt = stmt.order_by(OrderRecord.created_at.desc(), OrderRecord.id.desc())

        with self.transaction() as session:
            return [Order.model_validate(record) for record in session.scalars(stmt)]
