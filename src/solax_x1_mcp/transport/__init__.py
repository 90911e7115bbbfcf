"""Transport layer: serial connection and the transaction client."""

from .client import SolaxClient, TransactionState
from .serial_connection import SerialConnection, SerialSettings, Transport
