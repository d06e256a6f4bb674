"""Transport: request/acknowledge links to the controller's command line."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

import serial

from scjingle.errors import AcknowledgementMismatchError, TransportError

logger = logging.getLogger(__name__)


class Transport(ABC):
    """
    Abstract link that sends one command and checks its acknowledgement.

    ``send`` blocks until the full expected response has been observed, a
    different response arrived, or the link gave up. Use as a context
    manager to release the link:

        with SerialTransport.open("/dev/ttyACM0") as transport:
            transport.send(command, expected_response)
    """

    @abstractmethod
    def send(self, command: str, expected_response: str) -> None:
        """
        Transmit ``command`` and require ``expected_response`` back.

        Raises:
            AcknowledgementMismatchError: If the device answered differently.
            TransportError:               On I/O failure or timeout.
        """

    def close(self) -> None:
        """Release the underlying link."""

    def __enter__(self) -> "Transport":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class SerialTransport(Transport):
    """
    Transport over a USB CDC serial port using pyserial.

    The controller echoes each command character by character and then
    prints a status line, so the whole acknowledgement has a known length.
    Exactly that many bytes are read; a short read means the port timeout
    elapsed first.
    """

    DEFAULT_BAUDRATE = 115200
    DEFAULT_TIMEOUT = 2.0  # seconds to wait for a complete acknowledgement

    def __init__(self, connection: Any) -> None:
        """
        Args:
            connection: An open ``serial.Serial`` (or anything with the same
                        ``write``/``flush``/``read``/``close`` methods).
        """
        self._connection = connection

    @classmethod
    def open(
        cls,
        port: str,
        baudrate: int = DEFAULT_BAUDRATE,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> SerialTransport:
        """
        Open ``port``, which may be a device path or a pyserial URL.

        Raises:
            TransportError: If the port cannot be opened.
        """
        try:
            connection = serial.serial_for_url(port, baudrate=baudrate, timeout=timeout)
            connection.reset_input_buffer()
        except (serial.SerialException, ValueError) as exc:
            raise TransportError(f"Could not open serial port '{port}': {exc}") from exc
        logger.info("Opened %s at %d baud", port, baudrate)
        return cls(connection)

    def send(self, command: str, expected_response: str) -> None:
        expected = expected_response.encode("ascii")
        logger.debug("-> %r", command)
        try:
            self._connection.write(command.encode("ascii"))
            self._connection.flush()
            response = bytes(self._connection.read(len(expected)))
        except serial.SerialException as exc:
            raise TransportError(f"Serial I/O failed while sending {command!r}: {exc}") from exc
        logger.debug("<- %r", response)

        if response == expected:
            return
        received = response.decode("ascii", errors="replace")
        if len(response) < len(expected) and expected.startswith(response):
            raise TransportError(
                f"Timed out waiting for acknowledgement of {command!r} "
                f"({len(response)}/{len(expected)} bytes received)"
            )
        raise AcknowledgementMismatchError(command, expected_response, received)

    def close(self) -> None:
        try:
            self._connection.close()
        except serial.SerialException as exc:
            logger.warning("Error closing serial port: %s", exc)
