import re
from typing import Optional

from eventspan._trace.normalizers._base import SKIP
from eventspan._trace.normalizers._base import Normalizer
from eventspan._trace.normalizers._base import capture_backtrace
from eventspan.ext import SpanTypes


_IDENTIFIER = r"[\"`\[]?[\w$]+[\"`\]]?"
_TABLE = r"(%s(?:\.%s)*)" % (_IDENTIFIER, _IDENTIFIER)
_QUOTES = re.compile(r"[\"`\[\]]")

_SUMMARIES = (
    (re.compile(r"^\s*SELECT\b.*?\bFROM\s+" + _TABLE, re.IGNORECASE | re.DOTALL), "SELECT FROM %s"),
    (re.compile(r"^\s*INSERT\s+INTO\s+" + _TABLE, re.IGNORECASE), "INSERT INTO %s"),
    (re.compile(r"^\s*UPDATE\s+" + _TABLE, re.IGNORECASE), "UPDATE %s"),
    (re.compile(r"^\s*DELETE\s+FROM\s+" + _TABLE, re.IGNORECASE), "DELETE FROM %s"),
)
_TRANSACTION_STATEMENT = re.compile(r"^\s*(BEGIN|COMMIT|ROLLBACK|SAVEPOINT|RELEASE)\b", re.IGNORECASE)


def summarize(statement: Optional[str]) -> str:
    """Turn a SQL statement into a short span name, e.g. ``SELECT FROM users``."""
    if not statement:
        return "SQL"
    for regex, template in _SUMMARIES:
        match = regex.match(statement)
        if match:
            return template % _QUOTES.sub("", match.group(1))
    match = _TRANSACTION_STATEMENT.match(statement)
    if match:
        return match.group(1).upper()
    return "SQL"


class SqlNormalizer(Normalizer):
    registers = ("sql.sqlalchemy",)

    def normalize(self, transaction, name, payload):
        # schema introspection queries are noise
        if payload.get("name") == "SCHEMA":
            return SKIP

        statement = payload.get("sql")
        context = {"db": {"statement": statement, "type": "sql"}}
        return (summarize(statement), SpanTypes.DB.value, payload.get("dialect") or "sql", "sql", context)

    def backtrace(self, payload):
        return capture_backtrace()
