"""
CodeVault Backend — Password Hashing Unit Tests
=================================================

What:  Salted Argon2 digests, verification and parameter upgrades.
How:   Cheap Argon2 parameters keep the suite fast.
"""

from argon2 import PasswordHasher as Argon2Hasher

from codevault.services.password_service import PasswordHasher


def _fast(**overrides) -> PasswordHasher:
    params = {"time_cost": 1, "memory_cost": 8, "parallelism": 1}
    params.update(overrides)
    return PasswordHasher(Argon2Hasher(**params))


class TestPasswordHasher:

    def setup_method(self):
        self.hasher = _fast()

    def test_digest_is_not_plaintext(self):
        """The digest is an Argon2id PHC string without the password."""
        digest = self.hasher.hash("pw12345678")
        assert "pw12345678" not in digest
        assert digest.startswith("$argon2id$")

    def test_same_password_hashes_differently(self):
        """Each hash gets a fresh salt."""
        assert self.hasher.hash("pw12345678") != self.hasher.hash("pw12345678")

    def test_verify_match(self):
        """The right password verifies with no replacement digest."""
        digest = self.hasher.hash("pw12345678")
        assert self.hasher.verify("pw12345678", digest) == (True, None)

    def test_verify_mismatch(self):
        """A wrong password does not verify."""
        digest = self.hasher.hash("pw12345678")
        assert self.hasher.verify("wrong-password", digest) == (False, None)

    def test_corrupt_digest_is_a_mismatch(self):
        """A garbage digest counts as a mismatch, not an error."""
        assert self.hasher.verify("pw12345678", "not-a-digest") == (False, None)

    def test_outdated_parameters_produce_replacement(self):
        """Stronger parameters yield a replacement digest on match."""
        old_digest = self.hasher.hash("pw12345678")
        upgraded = _fast(time_cost=2)

        ok, replacement = upgraded.verify("pw12345678", old_digest)

        assert ok
        assert replacement is not None
        assert upgraded.verify("pw12345678", replacement) == (True, None)

    def test_dummy_verify_does_not_raise(self):
        """The timing equalizer runs without error."""
        self.hasher.dummy_verify()
