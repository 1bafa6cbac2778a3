"""Provider profiles: expertise and per-session price."""
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from slotbook.database import SessionFactory, SessionLocal, unit_of_work
from slotbook.exceptions import Forbidden, NotFound, ValidationError
from slotbook.models.account import Account, AccountRole
from slotbook.models.profile import Profile


@dataclass
class ProviderView:
    account_id: int
    first_name: str
    last_name: str
    expertise: str
    price: Decimal


MAX_PRICE = Decimal("1e8")


def _to_price(raw) -> Decimal:
    """Non-negative amount below MAX_PRICE, rounded to cents to fit Numeric(10,2)."""
    try:
        price = Decimal(str(raw))
    except (InvalidOperation, ValueError):
        raise ValidationError("Price must be a number", code="INVALID_PRICE", details={"price": str(raw)})
    if not price.is_finite() or price < 0:
        raise ValidationError("Price must be zero or more", code="INVALID_PRICE", details={"price": str(raw)})
    try:
        price = price.quantize(Decimal("0.01"))
    except InvalidOperation:
        price = MAX_PRICE
    if price >= MAX_PRICE:
        raise ValidationError("Price is too large", code="INVALID_PRICE", details={"price": str(raw)})
    return price


def _write(db: Session, account_id: int, expertise: str, price: Decimal) -> None:
    profile = db.query(Profile).filter(Profile.account_id == account_id).first()
    if profile is None:
        db.add(Profile(account_id=account_id, expertise=expertise, price=price))
    else:
        profile.expertise = expertise
        profile.price = price
    db.flush()


def _view(account: Account, profile: Profile) -> ProviderView:
    return ProviderView(
        account_id=account.id,
        first_name=account.first_name,
        last_name=account.last_name,
        expertise=profile.expertise,
        price=Decimal(profile.price),
    )


class ProfileService:
    def __init__(self, session_factory: SessionFactory = SessionLocal):
        self.session_factory = session_factory

    def upsert(self, account_id: int, role: AccountRole, expertise: str, price) -> ProviderView:
        """Create or replace the caller's profile. Providers only."""
        if role != AccountRole.provider:
            raise Forbidden(AccountRole.provider.value, AccountRole(role).value)
        expertise = (expertise or "").strip()
        if not expertise:
            raise ValidationError("Expertise is required", code="EXPERTISE_REQUIRED")
        price = _to_price(price)
        try:
            with unit_of_work(self.session_factory) as db:
                _write(db, account_id, expertise, price)
        except IntegrityError:
            # A concurrent first write created the row; apply ours over it
            with unit_of_work(self.session_factory) as db:
                _write(db, account_id, expertise, price)
        return self.get(account_id)

    def get(self, account_id: int) -> ProviderView:
        with unit_of_work(self.session_factory) as db:
            row = (
                db.query(Account, Profile)
                .join(Profile, Profile.account_id == Account.id)
                .filter(Account.id == account_id, Account.role == AccountRole.provider)
                .first()
            )
            if row is None:
                raise NotFound("Provider profile not found", code="PROFILE_NOT_FOUND",
                               details={"account_id": account_id})
            return _view(*row)

    def list_providers(self) -> list[ProviderView]:
        with unit_of_work(self.session_factory) as db:
            rows = (
                db.query(Account, Profile)
                .join(Profile, Profile.account_id == Account.id)
                .filter(Account.role == AccountRole.provider)
                .order_by(Account.last_name, Account.first_name, Account.id)
                .all()
            )
            return [_view(account, profile) for account, profile in rows]
