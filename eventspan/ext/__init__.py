from enum import Enum
from enum import unique


class StrEnum(str, Enum):
    pass


@unique
class SpanTypes(StrEnum):
    APP = "app"
    DB = "db"
    EXTERNAL = "external"
    TEMPLATE = "template"


@unique
class SpanSubtypes(StrEnum):
    CONTROLLER = "controller"
    HTTP = "http"
    JINJA2 = "jinja2"
    WSGI = "wsgi"
