"""Tests for moderation embeds."""

from datetime import datetime, timezone

from reaper.datatypes.action_datatypes import Action, ActionKind, EscalationOutcome, EscalationRule, IssuedAction
from reaper.moderation import embeds
from reaper.moderation.errors import NoMuteRoleConfigured

EXPIRY = datetime(2030, 1, 1, tzinfo=timezone.utc)


def make_action(kind=ActionKind.STRIKE, expiry=EXPIRY):
    return Action.create(kind, 1, 42, 7, "spam", expiry)


def field_values(embed):
    return {field.name: field.value for field in embed.fields}


def test_format_expiry():
    assert embeds.format_expiry(None) == "Never"
    assert embeds.format_expiry(EXPIRY) == f"<t:{int(EXPIRY.timestamp())}:F>"


def test_dm_embed_names_guild_and_action_id():
    action = make_action(ActionKind.MUTE)

    embed = embeds.build_dm_embed(action, "Test Guild")

    assert embed.title == "Muted!"
    assert embed.description == "You've been muted in Test Guild"
    assert embed.color == embeds.ACTION_COLORS[ActionKind.MUTE]
    assert action.id in embed.footer.text
    assert field_values(embed) == {
        "Moderator": "<@7>",
        "Reason": "spam",
        "Expires": embeds.format_expiry(EXPIRY),
    }


def test_kick_embeds_have_no_expiry_field():
    action = make_action(ActionKind.KICK, expiry=None)

    assert "Expires" not in field_values(embeds.build_dm_embed(action, None))
    assert "Expires" not in field_values(embeds.build_log_embed(action))


def test_log_embed_footer():
    action = make_action(ActionKind.BAN, expiry=None)

    embed = embeds.build_log_embed(action)

    assert embed.footer.text == f"User 42 banned | UUID: {action.id}"
    assert field_values(embed)["Expires"] == "Never"


def test_issued_embed_reports_failed_escalation_and_dm():
    rule = EscalationRule(1, 3, ActionKind.MUTE, "1h")
    issued = IssuedAction(
        action=make_action(),
        dm_notified=False,
        escalation=EscalationOutcome(rule=rule, error=NoMuteRoleConfigured()),
    )

    values = field_values(embeds.build_issued_embed(issued))

    assert "Notice" in values
    assert values["Escalation at 3 strikes"] == f"Mute failed: {NoMuteRoleConfigured.title}"


def test_search_embed_lists_actions():
    active = make_action()
    expired = make_action(ActionKind.KICK, expiry=None)
    expired.active = False

    embed = embeds.build_search_embed(42, [active, expired], include_expired=True)

    assert embed.title == "All actions (2)"
    names = [field.name for field in embed.fields]
    assert names == [f"Strike | {active.id}", f"Kick (expired) | {expired.id}"]


def test_search_embed_empty():
    embed = embeds.build_search_embed(42, [], include_expired=False)

    assert embed.fields == []
    assert "no active actions" in embed.description
