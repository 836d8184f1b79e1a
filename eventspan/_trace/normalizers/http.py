from urllib.parse import urlsplit

from eventspan._trace.normalizers._base import Normalizer
from eventspan.ext import SpanSubtypes
from eventspan.ext import SpanTypes


class OutgoingRequestNormalizer(Normalizer):
    registers = ("request.httpx",)

    def normalize(self, transaction, name, payload):
        method = (payload.get("method") or "GET").upper()
        url = payload.get("url") or ""
        host = urlsplit(str(url)).hostname or "unknown"
        context = {"http": {"method": method, "url": url}}
        return ("%s %s" % (method, host), SpanTypes.EXTERNAL.value, SpanSubtypes.HTTP.value, None, context)
