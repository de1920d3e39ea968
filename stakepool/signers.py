import logging
from typing import Iterator, List, Optional, Sequence

from nacl.exceptions import CryptoError
from nacl.signing import SigningKey
from solders.pubkey import Pubkey
from solders.signature import Signature

from stakepool.errors import SignerError

logger = logging.getLogger(__name__)


class Signer:
    """
    Something that can sign transaction messages for a pubkey.

    Subclasses implement ``try_pubkey`` and ``try_sign_message``, raising
    SignerError on failure. The plain variants call through to them.
    """

    def try_pubkey(self) -> Pubkey:
        raise NotImplementedError

    def try_sign_message(self, message: bytes) -> Signature:
        raise NotImplementedError

    def pubkey(self) -> Pubkey:
        return self.try_pubkey()

    def sign_message(self, message: bytes) -> Signature:
        return self.try_sign_message(message)

    def is_interactive(self) -> bool:
        """True if signing needs the user, e.g. a hardware wallet prompt."""
        return False


class KeypairSigner(Signer):
    """Local ed25519 keypair."""

    def __init__(self, signing_key: Optional[SigningKey] = None):
        self.signing_key = signing_key or SigningKey.generate()
        self._pubkey = Pubkey.from_bytes(bytes(self.signing_key.verify_key))

    @staticmethod
    def from_seed(seed: bytes) -> "KeypairSigner":
        return KeypairSigner(SigningKey(seed))

    def try_pubkey(self) -> Pubkey:
        return self._pubkey

    def try_sign_message(self, message: bytes) -> Signature:
        try:
            signed = self.signing_key.sign(message)
        except (CryptoError, TypeError) as e:
            raise SignerError(f"Failed to sign with {self._pubkey}: {e}") from e
        return Signature.from_bytes(signed.signature)

    def __repr__(self):
        return f"KeypairSigner({self._pubkey})"


def sort_signers(signers: Sequence[Signer]) -> List[Signer]:
    """Order signers by pubkey bytes, the order SortedSigners expects."""
    return sorted(signers, key=lambda s: bytes(s.pubkey()))


class SortedSigners:
    """
    Read-only view that treats a pubkey-sorted list of signers as a set.

    Consecutive signers with the same pubkey collapse into the first of
    them, so the same keypair passed in for several roles signs once.
    The caller must pass ``signers`` already sorted by pubkey (see
    ``sort_signers``) and must not mutate it while iterating. Unsorted
    input is not detected: non-adjacent duplicates are simply yielded
    more than once.
    """

    def __init__(self, signers: Sequence[Signer]):
        self.signers = signers

    def __iter__(self) -> Iterator[Signer]:
        signers = self.signers
        i = 0
        while i < len(signers):
            curr = signers[i]
            curr_pk = curr.pubkey()
            start = i
            i += 1
            while i < len(signers) and signers[i].pubkey() == curr_pk:
                i += 1
            if i - start > 1:
                logger.debug("Collapsed %d signers for %s", i - start, curr_pk)
            yield curr

    def __len__(self):
        return sum(1 for _ in self)

    def pubkeys(self) -> List[Pubkey]:
        return [s.pubkey() for s in self]

    def try_pubkeys(self) -> List[Pubkey]:
        """Raises SignerError from the first signer that fails."""
        return [s.try_pubkey() for s in self]

    def sign_message(self, message: bytes) -> List[Signature]:
        """Signatures in the same order as ``pubkeys()``."""
        return [s.sign_message(message) for s in self]

    def try_sign_message(self, message: bytes) -> List[Signature]:
        """
        Sign with each signer in turn. Stops at the first failure and
        raises it; no partial list is returned.
        """
        signatures = []
        for signer in self:
            try:
                signatures.append(signer.try_sign_message(message))
            except SignerError:
                logger.warning(
                    "Signing aborted after %d signatures", len(signatures)
                )
                raise
        return signatures

    def is_interactive(self) -> bool:
        return any(s.is_interactive() for s in self)
