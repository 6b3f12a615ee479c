"""Unit tests for cancellation support."""

from clipsmith.core.cancel import CancellationSlot, CancellationToken


class TestCancellationToken:
    """Tests for CancellationToken."""

    def test_not_cancelled_initially(self):
        """Token is not cancelled when created."""
        token = CancellationToken()
        assert token.is_cancelled is False

    def test_cancel_is_idempotent(self):
        """Calling cancel() multiple times is safe."""
        token = CancellationToken()

        token.cancel()
        token.cancel()

        assert token.is_cancelled is True

    def test_tokens_are_independent(self):
        """Cancelling one request's token leaves other tokens alone."""
        first = CancellationToken()
        second = CancellationToken()

        first.cancel()

        assert second.is_cancelled is False


class TestCancellationSlot:
    """Tests for CancellationSlot (latest request wins)."""

    def test_install_cancels_previous_token(self):
        """Installing a new token cancels the one it replaces."""
        slot = CancellationSlot()
        first = slot.install()
        second = slot.install()

        assert first.is_cancelled is True
        assert second.is_cancelled is False
        assert slot.current is second

    def test_release_only_clears_own_token(self):
        """A superseded request cannot clear its successor's token."""
        slot = CancellationSlot()
        first = slot.install()
        second = slot.install()

        assert slot.release(first) is False
        assert slot.current is second
        assert slot.release(second) is True
        assert slot.current is None

    def test_cancel_active(self):
        """cancel_active() cancels and clears the active token."""
        slot = CancellationSlot()
        token = slot.install()

        slot.cancel_active()

        assert token.is_cancelled is True
        assert slot.current is None
        slot.cancel_active()  # idle slot: no-op
