"""
age plugin state machines (recipient-v1 and identity-v1) over stdin/stdout.

recipient-v1, phase 1 (age -> plugin):
    -> add-recipient RECIPIENT
    -> add-identity IDENTITY
    -> wrap-file-key            (body: file key)
    -> done
recipient-v1, phase 2 (plugin -> age, each command answered by ok/fail):
    -> request-secret           (body: prompt)
    -> recipient-stanza FILE TYPE ARGS...
    -> error recipient|identity|internal [INDEX]
    -> done

identity-v1, phase 1:
    -> add-identity IDENTITY
    -> recipient-stanza FILE TYPE ARGS...
    -> done
identity-v1, phase 2:
    -> request-secret
    -> file-key FILE            (body: file key)
    -> error identity|stanza|internal [INDEX]
    -> done

Commands age sends that we don't know (grease, extension-labels) are ignored.
"""

from __future__ import annotations

import logging
from typing import BinaryIO, Dict, List, Optional, Tuple

from fido2prf.core.exceptions import (
    Fido2PrfError,
    IncorrectIdentityError,
    MalformedStanzaError,
    PINError,
    ProtocolError,
    UserCancelledError,
)
from fido2prf.core.models import Stanza
from fido2prf.hardware.device import list_security_keys
from fido2prf.security.identity import Fido2PrfIdentity, DeviceLister

from .wire import read_stanza, write_stanza

logger = logging.getLogger(__name__)

RECIPIENT_V1 = "recipient-v1"
IDENTITY_V1 = "identity-v1"
STATE_MACHINES = (RECIPIENT_V1, IDENTITY_V1)

PIN_PROMPT = "Enter the security key PIN:"


class Plugin:
    """One run of an age plugin state machine on a pair of binary streams."""

    def __init__(self, stdin: BinaryIO, stdout: BinaryIO, list_devices: DeviceLister = list_security_keys):
        self._in = stdin
        self._out = stdout
        self._list_devices = list_devices

    # ------------------------------------------------------------------
    # Wire helpers
    # ------------------------------------------------------------------

    def _read(self) -> Tuple[List[str], bytes]:
        stanza = read_stanza(self._in)
        if stanza is None:
            raise ProtocolError("unexpected end of input from age")
        return stanza

    def _send(self, args: List[str], body: bytes = b"") -> Tuple[List[str], bytes]:
        # Phase 2 commands are always answered by age.
        write_stanza(self._out, args, body)
        return self._read()

    def _send_expect_ok(self, args: List[str], body: bytes = b"") -> None:
        reply, _ = self._send(args, body)
        if reply[0] != "ok":
            raise ProtocolError(f"age answered {args[0]} with {reply[0]}")

    def _send_error(self, kind: str, index: Optional[int], message: str) -> None:
        args = ["error", kind] if index is None else ["error", kind, str(index)]
        logger.debug("sending %s", " ".join(args))
        self._send_expect_ok(args, message.encode("utf-8"))

    def _done(self) -> None:
        write_stanza(self._out, ["done"])

    def request_secret(self, prompt: str = PIN_PROMPT) -> str:
        reply, body = self._send(["request-secret"], prompt.encode("utf-8"))
        if reply[0] == "fail":
            raise UserCancelledError("PIN entry was cancelled")
        if reply[0] != "ok":
            raise ProtocolError(f"unexpected reply to request-secret: {reply[0]}")
        try:
            return body.decode("utf-8")
        except UnicodeDecodeError as e:
            raise PINError("PIN is not valid UTF-8") from e

    def _identity(self, identity: str) -> Fido2PrfIdentity:
        return Fido2PrfIdentity.from_string(identity, self.request_secret, self._list_devices)

    def _read_phase_one(self) -> List[Tuple[List[str], bytes]]:
        commands = []
        while True:
            args, body = self._read()
            if args[0] == "done":
                return commands
            commands.append((args, body))

    # ------------------------------------------------------------------
    # State machines
    # ------------------------------------------------------------------

    def run(self, state_machine: str) -> int:
        if state_machine == RECIPIENT_V1:
            self.recipient_v1()
        elif state_machine == IDENTITY_V1:
            self.identity_v1()
        else:
            raise ProtocolError(f"unknown state machine {state_machine!r}")
        return 0

    def recipient_v1(self) -> None:
        recipients: List[str] = []
        identities: List[str] = []
        file_keys: List[bytes] = []
        for args, body in self._read_phase_one():
            if args[0] == "add-recipient" and len(args) == 2:
                recipients.append(args[1])
            elif args[0] == "add-identity" and len(args) == 2:
                identities.append(args[1])
            elif args[0] == "wrap-file-key":
                file_keys.append(body)
            else:
                logger.debug("ignoring command %s", args[0])

        self._wrap_all(recipients, identities, file_keys)
        self._done()

    def identity_v1(self) -> None:
        identities: List[str] = []
        files: Dict[int, List[Stanza]] = {}
        for args, body in self._read_phase_one():
            if args[0] == "add-identity" and len(args) == 2:
                identities.append(args[1])
            elif args[0] == "recipient-stanza" and len(args) >= 3:
                try:
                    file_index = int(args[1])
                except ValueError as e:
                    raise ProtocolError(f"invalid file index {args[1]!r}") from e
                files.setdefault(file_index, []).append(Stanza(type=args[2], args=args[3:], body=body))
            else:
                logger.debug("ignoring command %s", args[0])

        parsed = self._parse_identities(identities)
        if parsed is not None:
            for file_index in sorted(files):
                self._unwrap_file(file_index, files[file_index], parsed)
        self._done()

    def _parse_identities(self, identities: List[str]) -> Optional[List[Fido2PrfIdentity]]:
        # Returns None after reporting the first identity that fails to parse.
        parsed = []
        for i, identity in enumerate(identities):
            try:
                parsed.append(self._identity(identity))
            except Fido2PrfError as e:
                self._send_error("identity", i, str(e))
                return None
        return parsed

    def _wrap_all(self, recipients: List[str], identities: List[str], file_keys: List[bytes]) -> None:
        if recipients:
            # fido2prf has no recipient encoding, only identities used as recipients.
            for i, _ in enumerate(recipients):
                self._send_error("recipient", i, "fido2prf recipients are not supported, use the identity")
            return

        parsed = self._parse_identities(identities)
        if parsed is None:
            return

        for file_index, file_key in enumerate(file_keys):
            for i, identity in enumerate(parsed):
                try:
                    stanzas = identity.wrap(file_key)
                except (Fido2PrfError, ValueError) as e:
                    self._send_error("identity", i, str(e))
                    return
                for stanza in stanzas:
                    self._send_expect_ok(
                        ["recipient-stanza", str(file_index), stanza.type] + stanza.args,
                        stanza.body,
                    )

    def _unwrap_file(self, file_index: int, stanzas: List[Stanza], identities: List[Fido2PrfIdentity]) -> None:
        for i, identity in enumerate(identities):
            try:
                file_key = identity.unwrap(stanzas)
            except IncorrectIdentityError:
                logger.debug("identity %d does not match file %d", i, file_index)
                continue
            except MalformedStanzaError as e:
                self._send_error("stanza", file_index, str(e))
                return
            except Fido2PrfError as e:
                self._send_error("identity", i, str(e))
                return
            self._send_expect_ok(["file-key", str(file_index)], file_key)
            return
