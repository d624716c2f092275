"""Tests for the hover state machine."""

from hovercard.core.models import DisplayState, ErrorCard, LoadingCard, PreviewRecord
from hovercard.gui.controller import (
    DISCONNECTED_MESSAGE,
    FAILED_MESSAGE,
    HoverController,
    SessionContext,
)
from hovercard.messaging.protocol import FETCH_METADATA, ChannelDisconnectedError

URL_A = "https://a.example/page"
URL_B = "https://b.example/page"


class _Anchor:
    def __init__(self, name: str):
        self.name = name

    def __repr__(self) -> str:
        return f"<anchor {self.name}>"


def _reply_for(url: str, title: str) -> dict:
    return PreviewRecord(url=url, title=title, favicon="https://icons.test/x").to_dict()


def _controller(connection, renderer) -> HoverController:
    return HoverController(connection, renderer, SessionContext())


# --- basic flow ---


def test_enter_shows_loading_and_requests(connection, renderer):
    controller = _controller(connection, renderer)
    anchor = _Anchor("a")
    controller.on_pointer_enter(anchor, URL_A)

    assert isinstance(renderer.state, LoadingCard)
    assert renderer.anchor is anchor
    assert controller.state == DisplayState.LOADING
    assert connection.sent[0][0] == {"type": FETCH_METADATA, "url": URL_A}


def test_reply_renders_record(connection, renderer):
    controller = _controller(connection, renderer)
    anchor = _Anchor("a")
    controller.on_pointer_enter(anchor, URL_A)
    connection.reply(0, _reply_for(URL_A, "Page A"))

    assert isinstance(renderer.state, PreviewRecord)
    assert renderer.state.title == "Page A"
    assert renderer.anchor is anchor
    assert controller.state == DisplayState.SUCCESS


def test_empty_href_is_ignored(connection, renderer):
    controller = _controller(connection, renderer)
    controller.on_pointer_enter(_Anchor("a"), "")
    assert connection.sent == []
    assert renderer.render_count == 0


def test_reentering_same_anchor_does_not_refetch(connection, renderer):
    controller = _controller(connection, renderer)
    anchor = _Anchor("a")
    controller.on_pointer_enter(anchor, URL_A)
    controller.on_pointer_enter(anchor, URL_A)
    assert len(connection.sent) == 1


def test_empty_reply_uses_url_defaults(connection, renderer):
    controller = _controller(connection, renderer)
    controller.on_pointer_enter(_Anchor("a"), URL_A)
    connection.reply(0, None)
    assert renderer.state.title == "a.example"
    assert renderer.state.url == URL_A


# --- supersession ---


def test_late_reply_for_superseded_hover_is_discarded(connection, renderer):
    controller = _controller(connection, renderer)
    anchor_a, anchor_b = _Anchor("a"), _Anchor("b")

    controller.on_pointer_enter(anchor_a, URL_A)
    controller.on_pointer_enter(anchor_b, URL_B)
    connection.reply(1, _reply_for(URL_B, "Page B"))
    connection.reply(0, _reply_for(URL_A, "Page A"))

    assert renderer.state.title == "Page B"
    assert renderer.anchor is anchor_b


def test_early_reply_for_superseded_hover_keeps_loading(connection, renderer):
    controller = _controller(connection, renderer)
    anchor_a, anchor_b = _Anchor("a"), _Anchor("b")

    controller.on_pointer_enter(anchor_a, URL_A)
    controller.on_pointer_enter(anchor_b, URL_B)
    connection.reply(0, _reply_for(URL_A, "Page A"))

    assert isinstance(renderer.state, LoadingCard)
    assert renderer.anchor is anchor_b
    assert controller.state == DisplayState.LOADING


def test_reply_after_leave_is_discarded(connection, renderer):
    controller = _controller(connection, renderer)
    anchor = _Anchor("a")
    controller.on_pointer_enter(anchor, URL_A)
    controller.on_pointer_leave(anchor, target_inside=False)
    connection.reply(0, _reply_for(URL_A, "Page A"))

    assert renderer.visible is False
    assert controller.state == DisplayState.IDLE


def test_hover_again_after_leave_issues_new_request(connection, renderer):
    controller = _controller(connection, renderer)
    anchor = _Anchor("a")
    controller.on_pointer_enter(anchor, URL_A)
    controller.on_pointer_leave(anchor, target_inside=False)
    controller.on_pointer_enter(anchor, URL_A)
    connection.reply(0, _reply_for(URL_A, "stale"))
    connection.reply(1, _reply_for(URL_A, "fresh"))
    assert renderer.state.title == "fresh"


# --- leaving and scrolling ---


def test_leave_into_descendant_keeps_card(connection, renderer):
    controller = _controller(connection, renderer)
    anchor = _Anchor("a")
    controller.on_pointer_enter(anchor, URL_A)
    controller.on_pointer_leave(anchor, target_inside=True)
    assert renderer.visible is True
    assert controller.context.session is not None


def test_leave_of_other_anchor_is_ignored(connection, renderer):
    controller = _controller(connection, renderer)
    controller.on_pointer_enter(_Anchor("a"), URL_A)
    controller.on_pointer_leave(_Anchor("other"), target_inside=False)
    assert renderer.visible is True


def test_scroll_hides_and_discards_pending_reply(connection, renderer):
    controller = _controller(connection, renderer)
    controller.on_pointer_enter(_Anchor("a"), URL_A)
    controller.on_scroll()
    assert renderer.visible is False
    connection.reply(0, _reply_for(URL_A, "Page A"))
    assert renderer.visible is False


def test_hidden_page_hides_card(connection, renderer):
    controller = _controller(connection, renderer)
    controller.on_pointer_enter(_Anchor("a"), URL_A)
    connection.reply(0, _reply_for(URL_A, "Page A"))
    assert renderer.visible is True

    controller.on_hidden()
    assert renderer.visible is False
    assert controller.state == DisplayState.IDLE


def test_hidden_page_discards_pending_reply(connection, renderer):
    controller = _controller(connection, renderer)
    anchor = _Anchor("a")
    controller.on_pointer_enter(anchor, URL_A)
    controller.on_hidden()
    connection.reply(0, _reply_for(URL_A, "Page A"))
    assert renderer.visible is False

    controller.on_pointer_enter(anchor, URL_A)
    assert len(connection.sent) == 2


# --- connectivity ---


def test_error_reply_clears_connectivity(connection, renderer):
    controller = _controller(connection, renderer)
    controller.on_pointer_enter(_Anchor("a"), URL_A)
    connection.reply(0, error=ChannelDisconnectedError("gone"))

    assert isinstance(renderer.state, ErrorCard)
    assert renderer.state.message == DISCONNECTED_MESSAGE
    assert controller.context.connected is False
    assert controller.state == DisplayState.ERROR


def test_disconnected_state_is_sticky(connection, renderer):
    controller = _controller(connection, renderer)
    controller.on_pointer_enter(_Anchor("a"), URL_A)
    connection.reply(0, error=RuntimeError("boom"))

    controller.on_pointer_enter(_Anchor("b"), URL_B)
    assert len(connection.sent) == 1
    assert renderer.state.message == DISCONNECTED_MESSAGE


def test_session_end_broadcast_switches_active_hover_to_error(connection, renderer):
    controller = _controller(connection, renderer)
    anchor = _Anchor("a")
    controller.on_pointer_enter(anchor, URL_A)
    controller.on_session_ended()

    assert isinstance(renderer.state, ErrorCard)
    assert renderer.anchor is anchor
    assert controller.context.connected is False


def test_hover_after_session_end_skips_request(connection, renderer):
    controller = _controller(connection, renderer)
    controller.on_session_ended()
    assert renderer.render_count == 0

    anchor = _Anchor("a")
    controller.on_pointer_enter(anchor, URL_A)
    assert connection.sent == []
    assert renderer.state.message == DISCONNECTED_MESSAGE
    assert renderer.anchor is anchor


def test_reply_arriving_after_session_end_stays_error(connection, renderer):
    controller = _controller(connection, renderer)
    controller.on_pointer_enter(_Anchor("a"), URL_A)
    controller.on_session_ended()
    connection.reply(0, _reply_for(URL_A, "Page A"))
    assert isinstance(renderer.state, ErrorCard)


def test_send_failure_is_communication_failure(connection, renderer):
    connection.alive = False
    controller = _controller(connection, renderer)
    controller.on_pointer_enter(_Anchor("a"), URL_A)

    assert renderer.state.message == DISCONNECTED_MESSAGE
    assert controller.context.connected is False


def test_visible_again_detects_lost_connection(connection, renderer):
    controller = _controller(connection, renderer)
    controller.on_visible()
    assert controller.context.connected is True

    connection.alive = False
    controller.on_visible()
    assert controller.context.connected is False
    assert renderer.render_count == 0


def test_malformed_reply_shows_failure(connection, renderer):
    controller = _controller(connection, renderer)
    controller.on_pointer_enter(_Anchor("a"), URL_A)
    connection.reply(0, "not a record")

    assert renderer.state.message == FAILED_MESSAGE
    assert controller.context.connected is False


def test_new_context_per_page_load(connection, renderer):
    first = _controller(connection, renderer)
    first.on_session_ended()
    second = _controller(connection, renderer)
    assert second.context.connected is True


def test_stale_error_reply_still_clears_connectivity(connection, renderer):
    controller = _controller(connection, renderer)
    anchor_b = _Anchor("b")
    controller.on_pointer_enter(_Anchor("a"), URL_A)
    controller.on_pointer_enter(anchor_b, URL_B)
    connection.reply(0, error=ChannelDisconnectedError("gone"))

    assert controller.context.connected is False
    # the newer hover keeps its loading card until its own reply arrives
    assert isinstance(renderer.state, LoadingCard)
    assert renderer.anchor is anchor_b

    connection.reply(1, _reply_for(URL_B, "Page B"))
    assert renderer.state.message == DISCONNECTED_MESSAGE


def test_stale_success_reply_leaves_connectivity(connection, renderer):
    controller = _controller(connection, renderer)
    controller.on_pointer_enter(_Anchor("a"), URL_A)
    controller.on_scroll()
    connection.reply(0, _reply_for(URL_A, "Page A"))
    assert controller.context.connected is True
