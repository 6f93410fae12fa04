from abc import ABC, abstractmethod
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Callable, Generic, Iterable, Optional, TypeVar

from cashflow.domain import Account, Frequency

CENTS = Decimal("0.01")

T = TypeVar('T')
U = TypeVar('U')
E = TypeVar('E')


class Maybe(Generic[T], ABC):
    
    @abstractmethod
    def map(self, f: Callable[[T], U]) -> 'Maybe[U]':
        pass
    
    @abstractmethod
    def bind(self, f: Callable[[T], 'Maybe[U]']) -> 'Maybe[U]':
        pass
    
    @abstractmethod
    def get_or_else(self, default: T) -> T:
        pass
    
    @abstractmethod
    def is_some(self) -> bool:
        pass
    
    @abstractmethod
    def is_none(self) -> bool:
        pass


class Some(Generic[T], Maybe[T]):
    
    def __init__(self, value: T):
        self._value = value
    
    def map(self, f: Callable[[T], U]) -> 'Maybe[U]':
        return Some(f(self._value))
    
    def bind(self, f: Callable[[T], 'Maybe[U]']) -> 'Maybe[U]':
        return f(self._value)
    
    def get_or_else(self, default: T) -> T:
        return self._value
    
    def is_some(self) -> bool:
        return True
    
    def is_none(self) -> bool:
        return False
    
    def __repr__(self) -> str:
        return f"Some({self._value})"
    
    def __eq__(self, other) -> bool:
        return isinstance(other, Some) and self._value == other._value


class Nothing(Generic[T], Maybe[T]):
    
    def map(self, f: Callable[[T], U]) -> 'Maybe[U]':
        return Nothing()
    
    def bind(self, f: Callable[[T], 'Maybe[U]']) -> 'Maybe[U]':
        return Nothing()
    
    def get_or_else(self, default: T) -> T:
        return default
    
    def is_some(self) -> bool:
        return False
    
    def is_none(self) -> bool:
        return True
    
    def __repr__(self) -> str:
        return "Nothing()"
    
    def __eq__(self, other) -> bool:
        return isinstance(other, Nothing)


class Either(Generic[E, T], ABC):
    
    @abstractmethod
    def map(self, f: Callable[[T], U]) -> 'Either[E, U]':
        pass
    
    @abstractmethod
    def bind(self, f: Callable[[T], 'Either[E, U]']) -> 'Either[E, U]':
        pass
    
    @abstractmethod
    def get_or_else(self, default: T) -> T:
        pass
    
    @abstractmethod
    def is_right(self) -> bool:
        pass
    
    @abstractmethod
    def is_left(self) -> bool:
        pass
    
    @abstractmethod
    def get_error(self) -> E:
        pass


class Right(Generic[E, T], Either[E, T]):
    
    def __init__(self, value: T):
        self._value = value
    
    def map(self, f: Callable[[T], U]) -> 'Either[E, U]':
        return Right(f(self._value))
    
    def bind(self, f: Callable[[T], 'Either[E, U]']) -> 'Either[E, U]':
        return f(self._value)
    
    def get_or_else(self, default: T) -> T:
        return self._value
    
    def is_right(self) -> bool:
        return True
    
    def is_left(self) -> bool:
        return False
    
    def get_error(self) -> E:
        raise ValueError("Cannot get error from Right")
    
    def __repr__(self) -> str:
        return f"Right({self._value})"
    
    def __eq__(self, other) -> bool:
        return isinstance(other, Right) and self._value == other._value


class Left(Generic[E, T], Either[E, T]):
    
    def __init__(self, error: E):
        self._error = error
    
    def map(self, f: Callable[[T], U]) -> 'Either[E, U]':
        return Left(self._error)
    
    def bind(self, f: Callable[[T], 'Either[E, U]']) -> 'Either[E, U]':
        return Left(self._error)
    
    def get_or_else(self, default: T) -> T:
        return default
    
    def is_right(self) -> bool:
        return False
    
    def is_left(self) -> bool:
        return True
    
    def get_error(self) -> E:
        return self._error
    
    def __repr__(self) -> str:
        return f"Left({self._error})"
    
    def __eq__(self, other) -> bool:
        return isinstance(other, Left) and self._error == other._error



def safe_account(accs: Iterable[Account], acc_id: Optional[str]) -> Maybe[Account]:
    for acc in accs:
        if acc.id == acc_id:
            return Some(acc)
    return Nothing()


def parse_amount(raw: Any) -> Either[dict, Decimal]:
    """Parse user input into a finite Decimal, rounded to cents."""
    if isinstance(raw, Decimal):
        value = raw
    else:
        text = str(raw if raw is not None else "").strip().replace(",", "").replace("$", "")
        try:
            value = Decimal(text)
        except InvalidOperation:
            return Left({
                "error": "invalid_amount",
                "message": f"Amount {raw!r} is not a number",
                "value": raw,
            })
    if not value.is_finite():
        return Left({
            "error": "invalid_amount",
            "message": f"Amount {raw!r} is not a finite number",
            "value": raw,
        })
    try:
        return Right(value.quantize(CENTS, rounding=ROUND_HALF_UP))
    except InvalidOperation:
        return Left({
            "error": "invalid_amount",
            "message": f"Amount {raw!r} is too large",
            "value": raw,
        })


def parse_due_date(raw: Any) -> Either[dict, Optional[date]]:
    if raw is None or raw == "":
        return Right(None)
    if isinstance(raw, date):
        return Right(raw)
    try:
        return Right(date.fromisoformat(str(raw)[:10]))
    except ValueError:
        return Left({
            "error": "invalid_date",
            "message": f"Due date {raw!r} is not an ISO calendar date",
            "value": raw,
        })


def validate_template_input(name: str, amount: Any, frequency: Any, due: Any = None) -> Either[dict, dict]:
    """Check a new/edited bill template form; Right carries parsed fields."""
    if not name or not name.strip():
        return Left({"error": "missing_name", "message": "Bill name is required"})
    try:
        freq = Frequency(frequency)
    except ValueError:
        return Left({
            "error": "invalid_frequency",
            "message": f"Frequency {frequency!r} is not one of {[f.value for f in Frequency]}",
            "value": frequency,
        })
    return (
        parse_amount(amount)
        .map(abs)
        .bind(lambda amt: parse_due_date(due).map(
            lambda d: {"name": name.strip(), "default_amount": amt, "frequency": freq, "next_due_date": d}
        ))
    )


def validate_transaction_input(description: str, amount: Any, is_income: bool, due: Any = None) -> Either[dict, dict]:
    if not description or not description.strip():
        return Left({"error": "missing_description", "message": "Description is required"})
    return (
        parse_amount(amount)
        .map(lambda amt: abs(amt) if is_income else -abs(amt))
        .bind(lambda amt: parse_due_date(due).map(
            lambda d: {"description": description.strip(), "amount": amt, "due_date": d}
        ))
    )


# --- composition helpers

def pipe(x, *funcs):
    """Pipe a value through a series of functions.

    pipe(x, f, g, h) == h(g(f(x)))
    Returns the final result.
    """
    res = x
    for f in funcs:
        res = f(res)
    return res
