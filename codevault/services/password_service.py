"""
CodeVault Backend — Password Hashing
======================================

What:  Turns plaintext passwords into stored digests and checks candidates.
Why:   Passwords are never stored; only a salted, slow, memory-hard digest.
How:   argon2-cffi's PasswordHasher (Argon2id). Each hash gets a fresh random
       salt; the PHC string embeds the salt and cost parameters, so
       verification needs nothing but the digest.

Digest format (PHC):
    $argon2id$v=19$m=65536,t=3,p=4$<salt>$<hash>

Parameter upgrades:
    If the cost parameters are raised later, verify() returns a new digest
    for passwords stored with the old ones. AuthService.login saves it, so
    digests migrate transparently as users log in.
"""

import logging
from typing import Optional, Tuple

from argon2 import PasswordHasher as Argon2Hasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

logger = logging.getLogger(__name__)


class PasswordHasher:
    """
    Argon2id hashing behind a small interface.

    Thread safety: the underlying hasher holds only immutable parameters;
    one instance is shared by the whole process.
    """

    def __init__(self, hasher: Optional[Argon2Hasher] = None):
        self._hasher = hasher or Argon2Hasher()
        # Digest of a random password, verified against when the username is
        # unknown so both failure paths cost the same
        self._dummy_digest = self._hasher.hash("codevault-timing-equalizer")

    def hash(self, password: str) -> str:
        """Return a salted digest of `password` (UTF-8)."""
        return self._hasher.hash(password)

    def verify(self, password: str, digest: str) -> Tuple[bool, Optional[str]]:
        """
        Check `password` against a stored digest.

        Returns:
            (matches, replacement_digest). replacement_digest is non-None only
            when the password matched and the stored digest uses outdated
            parameters.

        A corrupt or unrecognized digest counts as a mismatch (logged), never
        as a server error: the caller answers 401 either way.
        """
        try:
            self._hasher.verify(digest, password)
        except VerifyMismatchError:
            return False, None
        except (InvalidHashError, VerificationError) as e:
            logger.warning("Unusable password digest encountered: %s", type(e).__name__)
            return False, None

        if self._hasher.check_needs_rehash(digest):
            return True, self._hasher.hash(password)
        return True, None

    def dummy_verify(self) -> None:
        """Spend one verify() worth of time; used for unknown usernames."""
        self.verify("not-the-password", self._dummy_digest)


# Shared by AuthService instances that are not given their own hasher
password_hasher = PasswordHasher()
