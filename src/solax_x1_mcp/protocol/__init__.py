"""Protocol layer: packet framing, checksum, command builders, and errors.

Response parsers live in :mod:`.parser`, which depends on the models
package and is imported directly.
"""

from .framing import Packet, build_frame, parse_frame
from .commands import ControlCode, Operation, Status, OPERATIONS
from .errors import ErrorKind, SolaxError
