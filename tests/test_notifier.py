"""Tests for kryten_armcoin.notifier module."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from pydantic import BaseModel

from kryten_armcoin.config import GachaTemplatesConfig
from kryten_armcoin.economy import WagerResult, WagerState
from kryten_armcoin.market import MarketState
from kryten_armcoin.notifier import WAGER_GAMES, OutcomeNotifier, build_wager_table


class TestBuildWagerTable:
    """Every WagerState needs a chat and a feed template."""

    def test_default_templates_cover_every_state(self):
        table = build_wager_table(GachaTemplatesConfig())
        assert set(table) == set(WagerState)

    def test_missing_state_fails(self):
        class Partial(BaseModel):
            win_chat: str = "w"
            win_feed: str = "w"
            lose_chat: str = "l"
            lose_feed: str = "l"

        with pytest.raises(ValueError, match="win_jackpot"):
            build_wager_table(Partial())


class TestRenderWager:

    def test_gacha_win(self, notifier: OutcomeNotifier):
        result = WagerResult(state=WagerState.WIN, bet=4, balance=14, win=8)
        chat, feed = notifier.render_wager("gacha", "alice", result)
        assert chat == "@alice bet 4 -> won 8 ArmCoin (14)."
        assert "alice" in feed
        assert "fa-level-up-alt" in feed

    def test_gacha_lose_marks_feed(self, notifier: OutcomeNotifier):
        result = WagerResult(state=WagerState.LOSE, bet=4, balance=6)
        chat, feed = notifier.render_wager("gacha", "alice", result)
        assert "busted" in chat
        assert "fa-user-injured" in feed
        assert "fa-level-down-alt" in feed

    def test_allin_jackpot_marks_feed(self, notifier: OutcomeNotifier):
        result = WagerResult(state=WagerState.WIN_JACKPOT, bet=3, balance=30, win=30)
        chat, feed = notifier.render_wager("allin", "alice", result)
        assert "JACKPOT" in chat
        assert "fa-coins" in feed


class TestNotifyWager:

    async def test_one_chat_and_one_feed(self, notifier: OutcomeNotifier, mock_client: MagicMock):
        result = WagerResult(state=WagerState.LOSE, bet=2, balance=0)
        await notifier.notify_wager("testchannel", "alice", "allin", result)
        mock_client.send_chat.assert_awaited_once()
        mock_client.kv_put.assert_awaited_once()
        channel, message = mock_client.send_chat.call_args[0]
        assert channel == "testchannel"
        assert message == "@alice bet everything (2) -> busted!"


_EXPECTED_MARKERS = {
    WagerState.LOSE: (("busted",), ("won", "JACKPOT"), ("fa-user-injured", "fa-level-down-alt"), ("fa-level-up-alt",)),
    WagerState.WIN: (("won",), ("busted", "JACKPOT"), ("fa-level-up-alt",), ("fa-coins", "fa-level-down-alt")),
    WagerState.WIN_JACKPOT: (("JACKPOT", "won"), ("busted",), ("fa-coins", "fa-level-up-alt"), ("fa-level-down-alt",)),
}


@pytest.mark.parametrize("state", list(WagerState))
@pytest.mark.parametrize("game", WAGER_GAMES)
class TestEveryOutcome:
    """Each game renders the template for the rolled state, never another one."""

    def test_render_picks_matching_templates(
        self, notifier: OutcomeNotifier, game: str, state: WagerState,
    ):
        win = 0 if state is WagerState.LOSE else 6
        result = WagerResult(state=state, bet=3, balance=8, win=win)
        chat, feed = notifier.render_wager(game, "alice", result)
        chat_has, chat_lacks, feed_has, feed_lacks = _EXPECTED_MARKERS[state]
        assert "@alice" in chat
        assert "alice" in feed
        for marker in chat_has:
            assert marker in chat
        for marker in chat_lacks:
            assert marker not in chat
        for marker in feed_has:
            assert marker in feed
        for marker in feed_lacks:
            assert marker not in feed

    async def test_notify_sends_once(
        self, notifier: OutcomeNotifier, mock_client: MagicMock, game: str, state: WagerState,
    ):
        win = 0 if state is WagerState.LOSE else 6
        result = WagerResult(state=state, bet=3, balance=8, win=win)
        chat, feed = notifier.render_wager(game, "alice", result)
        await notifier.notify_wager("testchannel", "alice", game, result)
        mock_client.send_chat.assert_awaited_once_with("testchannel", chat)
        mock_client.kv_put.assert_awaited_once()
        assert mock_client.kv_put.call_args[0][2][-1]["message"] == feed


class TestReplies:

    async def test_balance(self, notifier: OutcomeNotifier, mock_client: MagicMock):
        await notifier.balance("testchannel", "alice", 105)
        mock_client.send_chat.assert_awaited_once_with("testchannel", "@alice has 105 ArmCoin.")

    async def test_no_coins(self, notifier: OutcomeNotifier, mock_client: MagicMock):
        await notifier.no_coins("testchannel", "alice")
        mock_client.send_chat.assert_awaited_once_with("testchannel", "@alice has 0 ArmCoin.")

    async def test_give(self, notifier: OutcomeNotifier, mock_client: MagicMock):
        await notifier.give("testchannel", "admin", "alice", 5, 105)
        message = mock_client.send_chat.call_args[0][1]
        assert "alice" in message
        assert "105" in message

    async def test_insufficient_funds(self, notifier: OutcomeNotifier, mock_client: MagicMock):
        await notifier.insufficient_funds("testchannel", "alice")
        assert "enough" in mock_client.send_chat.call_args[0][1]

    async def test_payout_summary(self, notifier: OutcomeNotifier, mock_client: MagicMock):
        await notifier.payout_summary("testchannel", "alice", bonus=10, count=3, amount=1)
        message = mock_client.send_chat.call_args[0][1]
        assert "alice received 10 ArmCoin" in message
        assert "3 members received 1 ArmCoin" in message


class TestFeedOnly:
    """Market / payout / subscription announcements never touch chat."""

    async def test_market_open(self, notifier: OutcomeNotifier, mock_client: MagicMock):
        await notifier.market(MarketState.OPEN)
        mock_client.send_chat.assert_not_awaited()
        entries = mock_client.kv_put.call_args[0][2]
        assert "open" in entries[-1]["message"]

    async def test_market_close(self, notifier: OutcomeNotifier, mock_client: MagicMock):
        await notifier.market(MarketState.CLOSED)
        entries = mock_client.kv_put.call_args[0][2]
        assert "closed" in entries[-1]["message"]

    async def test_payout(self, notifier: OutcomeNotifier, mock_client: MagicMock):
        await notifier.payout(3, 1, "alice")
        mock_client.send_chat.assert_not_awaited()
        message = mock_client.kv_put.call_args[0][2][-1]["message"]
        assert ">3<" in message
        assert "alice" in message

    async def test_subscription(self, notifier: OutcomeNotifier, mock_client: MagicMock):
        await notifier.subscription("alice", 10)
        mock_client.send_chat.assert_not_awaited()
        assert "subscribing" in mock_client.kv_put.call_args[0][2][-1]["message"]
