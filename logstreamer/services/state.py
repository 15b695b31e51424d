from logstreamer.config import get_settings
from logstreamer.services.log_stream import LogStreamService


log_stream_service = LogStreamService(get_settings())
