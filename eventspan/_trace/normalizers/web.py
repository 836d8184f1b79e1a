from eventspan._trace.normalizers._base import Normalizer
from eventspan.ext import SpanSubtypes
from eventspan.ext import SpanTypes


class ViewDispatchNormalizer(Normalizer):
    """Framework handing a request over to a view.

    The payload carries the ``controller`` (view class or function) and, for class
    based views, the ``action`` (handler method). The transaction is named after the
    resulting endpoint.
    """

    registers = ("process_view.django", "dispatch_request.flask")

    def normalize(self, transaction, name, payload):
        endpoint = self.endpoint(payload)
        transaction.name = endpoint
        return (endpoint, SpanTypes.APP.value, SpanSubtypes.CONTROLLER.value, "action", None)

    @staticmethod
    def endpoint(payload):
        controller = payload.get("controller") or "unknown"
        action = payload.get("action")
        if action:
            return "%s#%s" % (controller, action)
        return controller
