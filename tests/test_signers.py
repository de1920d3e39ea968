import unittest

from nacl.signing import SigningKey, VerifyKey
from solders.signature import Signature

from stakepool import KeypairSigner, Signer, SignerError, SortedSigners, sort_signers


class FailingSigner(Signer):
    """Knows its pubkey but cannot sign."""

    def __init__(self, pubkey):
        self._pubkey = pubkey
        self.sign_calls = 0

    def try_pubkey(self):
        return self._pubkey

    def try_sign_message(self, message):
        self.sign_calls += 1
        raise SignerError("device unplugged")


class UnreachableSigner(Signer):
    """Remote signer that cannot even report its pubkey."""

    def try_pubkey(self):
        raise SignerError("remote signer unreachable")


class CountingSigner(KeypairSigner):

    def __init__(self, signing_key=None, interactive=False):
        super().__init__(signing_key)
        self.sign_calls = 0
        self.interactive = interactive

    def try_sign_message(self, message):
        self.sign_calls += 1
        return super().try_sign_message(message)

    def is_interactive(self):
        return self.interactive


class TestSortedSigners(unittest.TestCase):

    def setUp(self):
        self.message = b"stake pool tx message"
        self.signers = sort_signers([KeypairSigner() for _ in range(3)])

    def _verify(self, signer, signature):
        verify_key = VerifyKey(bytes(signer.pubkey()))
        verify_key.verify(self.message, bytes(signature))

    def test_duplicate_pair(self):
        """[A, A, B] signs as [A, B], each signature checks against its pubkey."""
        a, b = self.signers[:2]
        a_again = KeypairSigner(a.signing_key)
        sorted_signers = SortedSigners([a, a_again, b])

        self.assertEqual(sorted_signers.pubkeys(), [a.pubkey(), b.pubkey()])

        signatures = sorted_signers.sign_message(self.message)
        self.assertEqual(len(signatures), 2)
        self.assertIsInstance(signatures[0], Signature)
        self._verify(a, signatures[0])
        self._verify(b, signatures[1])

    def test_duplicates_logged(self):
        a, b, _ = self.signers
        with self.assertLogs("stakepool.signers", level="DEBUG"):
            list(SortedSigners([a, KeypairSigner(a.signing_key), b]))

    def test_first_of_run_is_kept(self):
        a = self.signers[0]
        copies = [KeypairSigner(a.signing_key) for _ in range(3)]
        self.assertIs(list(SortedSigners([a] + copies))[0], a)

    def test_empty(self):
        sorted_signers = SortedSigners([])
        self.assertEqual(list(sorted_signers), [])
        self.assertEqual(sorted_signers.pubkeys(), [])
        self.assertEqual(sorted_signers.try_sign_message(self.message), [])
        self.assertFalse(sorted_signers.is_interactive())

    def test_arbitrary_runs(self):
        a, b, c = self.signers
        cases = [
            ([a], [a]),
            ([a, b, c], [a, b, c]),
            ([a, a, a, b, c, c], [a, b, c]),
            ([a, b, b, b, b], [a, b]),
            ([c, c], [c]),
        ]
        for signers, expected in cases:
            with self.subTest(signers=signers):
                deduped = list(SortedSigners(signers))
                self.assertEqual(deduped, expected)
                self.assertLessEqual(len(deduped), len(signers))
                self.assertEqual(len(deduped) == len(signers), len(set(signers)) == len(signers))

    def test_restartable(self):
        a, b, _ = self.signers
        sorted_signers = SortedSigners([a, a, b])
        first = iter(sorted_signers)
        self.assertIs(next(first), a)
        self.assertEqual(list(sorted_signers), [a, b])
        self.assertEqual(list(first), [b])
        self.assertEqual(len(sorted_signers), 2)

    def test_try_pubkeys(self):
        a, b, c = self.signers
        self.assertEqual(
            SortedSigners([a, b, b, c]).try_pubkeys(),
            [a.pubkey(), b.pubkey(), c.pubkey()],
        )

    def test_try_pubkeys_failure(self):
        with self.assertRaises(SignerError):
            SortedSigners([self.signers[0], UnreachableSigner()]).try_pubkeys()

    def test_try_sign_message_stops_at_first_failure(self):
        """Second of three signers fails: error raised, third never asked."""
        a, b, c = self.signers
        first = CountingSigner(a.signing_key)
        failing = FailingSigner(b.pubkey())
        last = CountingSigner(c.signing_key)

        with self.assertRaises(SignerError):
            SortedSigners([first, failing, last]).try_sign_message(self.message)

        self.assertEqual(first.sign_calls, 1)
        self.assertEqual(failing.sign_calls, 1)
        self.assertEqual(last.sign_calls, 0)

    def test_sign_message_order_matches_pubkeys(self):
        sorted_signers = SortedSigners(self.signers)
        pubkeys = sorted_signers.pubkeys()
        signatures = sorted_signers.try_sign_message(self.message)
        for pubkey, signature in zip(pubkeys, signatures):
            VerifyKey(bytes(pubkey)).verify(self.message, bytes(signature))

    def test_is_interactive(self):
        a, b, _ = self.signers
        plain = CountingSigner(a.signing_key)
        prompt = CountingSigner(b.signing_key, interactive=True)
        self.assertFalse(SortedSigners([plain]).is_interactive())
        self.assertTrue(SortedSigners([plain, prompt]).is_interactive())

    def test_sort_signers(self):
        signers = [KeypairSigner() for _ in range(5)]
        ordered = sort_signers(signers + signers)
        keys = [bytes(s.pubkey()) for s in ordered]
        self.assertEqual(keys, sorted(keys))
        self.assertEqual(len(list(SortedSigners(ordered))), 5)


class TestKeypairSigner(unittest.TestCase):

    def test_from_seed(self):
        seed = bytes(range(32))
        signer = KeypairSigner.from_seed(seed)
        self.assertEqual(
            bytes(signer.pubkey()),
            bytes(SigningKey(seed).verify_key),
        )
        self.assertEqual(signer.pubkey(), KeypairSigner.from_seed(seed).pubkey())
        self.assertFalse(signer.is_interactive())

    def test_signature_verifies(self):
        signer = KeypairSigner()
        signature = signer.sign_message(b"hello")
        VerifyKey(bytes(signer.pubkey())).verify(b"hello", bytes(signature))


if __name__ == '__main__':
    unittest.main()
