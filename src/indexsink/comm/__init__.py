from .transport import OpenSearchTransport as OpenSearchTransport
