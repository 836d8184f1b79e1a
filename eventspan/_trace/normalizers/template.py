from eventspan._trace.normalizers._base import SKIP
from eventspan._trace.normalizers._base import Normalizer
from eventspan._trace.normalizers._base import capture_backtrace
from eventspan.ext import SpanSubtypes
from eventspan.ext import SpanTypes


class RenderTemplateNormalizer(Normalizer):
    registers = ("render_template.jinja2",)

    def normalize(self, transaction, name, payload):
        template = payload.get("template")
        if not template:
            return SKIP
        return (template, SpanTypes.TEMPLATE.value, SpanSubtypes.JINJA2.value, "render", None)

    def backtrace(self, payload):
        return capture_backtrace()
