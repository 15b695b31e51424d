import logging

from stdforward.consumers import CallbackWriter, LineEmitter, QueueWriter
from stdforward.errors import (
    ConsumerClosedError,
    ConsumerExistsError,
    ForwarderClosedError,
    InterceptionError,
    StdForwardError,
)
from stdforward.forwarder import DEFAULT_READ_SIZE, StreamForwarder
from stdforward.registry import (
    Stream,
    add_stderr_writer,
    add_stdout_writer,
    as_stream,
    configure,
    get_forwarder,
    get_stream,
    register_consumer,
    remove_stderr_writer,
    remove_stdout_writer,
    shutdown,
    unregister_consumer,
)

# Without a configured handler, warnings would fall back to the current
# sys.stderr, which may be the intercepted pipe itself.
logging.getLogger(__name__).addHandler(logging.NullHandler())
