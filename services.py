import logging
from datetime import datetime, timedelta, timezone
from typing import List

from sqlalchemy import MetaData, Table, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from config import Settings
from database import Database
from errors import AuthError, ConflictError, InternalError, NotFoundError, TransactionError, ValidationError
from models import Order, OrderItem, Product, User
from schemas import CheckoutRequest, LoginRequest, ProductOut, RegisterRequest
from security import create_access_token, get_password_hash, verify_password

logger = logging.getLogger(__name__)

DEFAULT_ROLE = "buyer"

# PostgreSQL unique_violation
UNIQUE_VIOLATION = "23505"


def _violates_email_unique(error: IntegrityError) -> bool:
    orig = error.orig
    message = str(orig).lower()
    if getattr(orig, "pgcode", None) is not None:
        return orig.pgcode == UNIQUE_VIOLATION and "email" in message
    # sqlite: "UNIQUE constraint failed: users.email"
    return "unique" in message and "users.email" in message


class AccountService:
    def __init__(self, db: Database, settings: Settings):
        self.db = db
        self.settings = settings

    def _find_by_email(self, session, email: str):
        return session.scalars(select(User).where(User.email == email)).first()

    def register(self, payload: RegisterRequest) -> User:
        if not (payload.name and payload.email and payload.phone and payload.password):
            raise ValidationError("All fields are required")

        password_hash = get_password_hash(payload.password)

        session = self.db.session()
        try:
            if self._find_by_email(session, payload.email):
                raise ConflictError("Email already registered")
            user = User(
                name=payload.name,
                email=payload.email,
                phone=payload.phone,
                password_hash=password_hash,
                role=DEFAULT_ROLE,
            )
            session.add(user)
            session.commit()
        except IntegrityError as e:
            session.rollback()
            if _violates_email_unique(e):
                # a concurrent registration won the race on the unique email
                logger.warning("Duplicate email rejected at insert: %s", e.orig)
                raise ConflictError("Email already registered")
            logger.exception("Registration error")
            raise InternalError("Server error")
        except SQLAlchemyError:
            session.rollback()
            logger.exception("Registration error")
            raise InternalError("Server error")
        finally:
            session.close()

        logger.info("Registered user %s", user.id)
        return user

    def login(self, payload: LoginRequest) -> dict:
        if not payload.email or not payload.password:
            raise ValidationError("Email and password are required")

        try:
            with self.db.read_session() as session:
                user = self._find_by_email(session, payload.email)
        except SQLAlchemyError:
            logger.exception("Login error")
            raise InternalError("Server error")

        if user is None:
            raise NotFoundError("User not found", status_code=400)
        if not verify_password(payload.password, user.password_hash):
            raise AuthError("Invalid credentials", status_code=400)

        token = create_access_token(
            user.id,
            self.settings.secret_key,
            expires_delta=self._token_lifetime(),
            algorithm=self.settings.algorithm,
        )
        return {"token": token, "user": user}

    def _token_lifetime(self) -> timedelta:
        return timedelta(minutes=self.settings.access_token_expire_minutes)


class CatalogService:
    """Read-only access to the products table.

    The table's columns are owned outside this service, so it is reflected
    on first use and every column of a row is returned, not just the ones
    the Product model maps.
    """

    def __init__(self, db: Database):
        self.db = db
        self._table = None

    def _products(self, session) -> Table:
        if self._table is None:
            self._table = Table(Product.__tablename__, MetaData(), autoload_with=session.connection())
        return self._table

    def list_products(self) -> List[dict]:
        try:
            with self.db.read_session() as session:
                products = self._products(session)
                rows = session.execute(select(products).order_by(products.c.id)).all()
        except SQLAlchemyError:
            logger.exception("Error retrieving products")
            raise InternalError("Failed to retrieve products")
        return [ProductOut.model_validate(dict(row._mapping)).model_dump() for row in rows]

    def get_product(self, product_id: int) -> dict:
        try:
            with self.db.read_session() as session:
                products = self._products(session)
                row = session.execute(select(products).where(products.c.id == product_id)).first()
        except SQLAlchemyError:
            logger.exception("Error retrieving product %s", product_id)
            raise InternalError("Failed to retrieve product")
        if row is None:
            raise NotFoundError("Product not found")
        return ProductOut.model_validate(dict(row._mapping)).model_dump()


class CheckoutService:
    """Writes an order and its items in one transaction.

    The order row and every item row share one session, and so one pooled
    connection, from BEGIN to COMMIT/ROLLBACK. The session is closed on
    every path, which hands the connection back to the pool.
    """

    def __init__(self, db: Database):
        self.db = db

    def validate(self, payload: CheckoutRequest):
        if not payload.cart_items:
            raise ValidationError("Cart is empty")
        if payload.missing_fields():
            raise ValidationError("All fields are required")

    def checkout(self, user_id: int, payload: CheckoutRequest) -> int:
        self.validate(payload)

        session = self.db.session()
        try:
            session.begin()
            try:
                order = Order(
                    user_id=user_id,
                    name=payload.name,
                    email=payload.email,
                    address=payload.address,
                    city=payload.city,
                    postal_code=payload.postal_code,
                    phone=payload.phone,
                    payment_method=payload.payment_method,
                    total_amount=payload.total_amount,
                    created_at=datetime.now(timezone.utc),
                )
                session.add(order)
                session.flush()
                order_id = order.id

                for item in payload.cart_items:
                    session.add(OrderItem(
                        order_id=order_id,
                        product_id=item.id,
                        product_name=item.name,
                        quantity=item.quantity,
                        price=item.price,
                    ))
                    session.flush()

                session.commit()
            except Exception as e:
                session.rollback()
                logger.error("Transaction error for user %s: %s", user_id, e)
                raise TransactionError("Failed to process order") from e
        finally:
            session.close()

        logger.info("Order %s created for user %s with %d item(s)", order_id, user_id, len(payload.cart_items))
        return order_id


class DiagnosticsService:
    def __init__(self, db: Database):
        self.db = db

    def health(self) -> dict:
        return {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}

    def test_db(self) -> dict:
        now = self.db.now()
        return {"status": "success", "time": now}
