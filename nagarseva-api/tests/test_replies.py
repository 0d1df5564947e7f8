from nagarseva.services.replies import (
    build_summary,
    category_keyboard,
    confirmation_keyboard,
    language_keyboard,
    render_reply,
    stage_label,
    translate,
)
from nagarseva.services.state_machine import Draft, Keyboard, Language, Reply

CATEGORIES = [(1, "Roads & Potholes"), (2, "Street Lights"), (3, "Waste Management")]


class TestTranslate:
    def test_english(self):
        assert translate(Language.EN, "cancelled") == "Complaint creation cancelled."

    def test_marathi(self):
        assert translate(Language.MR, "cancelled") == "तक्रार नोंदणी रद्द केली."

    def test_params_are_filled(self):
        text = translate(Language.EN, "submitted", {"ticket": "TGM-ABC-1234"})
        assert text == "Complaint submitted successfully. Ticket: TGM-ABC-1234"

    def test_missing_param_is_left_in_place(self):
        assert translate(Language.EN, "submitted", {"other": "x"}).endswith("Ticket: {ticket}")

    def test_unknown_key_returns_key(self):
        assert translate(Language.HI, "noSuchKey") == "noSuchKey"

    def test_every_language_has_every_message(self):
        keys = [
            "welcome",
            "chooseLanguage",
            "languageSet",
            "chooseCategory",
            "enterDescription",
            "enterLocation",
            "confirmPrompt",
            "submitted",
            "submitFailed",
            "cancelled",
            "help",
            "invalidDescription",
            "invalidLocation",
            "unknown",
            "statusMissing",
            "statusNotFound",
            "statusResult",
        ]
        for language in Language:
            for key in keys:
                assert translate(language, key) != key, f"{language.value}.{key}"


class TestStageLabel:
    def test_localized(self):
        assert stage_label(Language.EN, "in_progress") == "In progress"
        assert stage_label(Language.HI, "closed") == "बंद"

    def test_unknown_stage_passes_through(self):
        assert stage_label(Language.EN, "archived") == "archived"


class TestKeyboards:
    def test_language_keyboard(self):
        row = language_keyboard()["inline_keyboard"][0]
        assert [button["callback_data"] for button in row] == ["lang:en", "lang:hi", "lang:mr"]

    def test_category_keyboard_two_per_row(self):
        rows = category_keyboard(CATEGORIES)["inline_keyboard"]
        assert len(rows) == 2
        assert rows[0][1] == {"text": "Street Lights", "callback_data": "cat:2"}
        assert rows[1] == [{"text": "Waste Management", "callback_data": "cat:3"}]

    def test_confirmation_keyboard_is_localized(self):
        row = confirmation_keyboard(Language.HI)["inline_keyboard"][0]
        assert row[0] == {"text": "जमा करें", "callback_data": "confirm:submit"}
        assert row[1]["callback_data"] == "confirm:cancel"


class TestRenderReply:
    def test_multiple_keys_joined(self):
        reply = Reply(("welcome", "chooseLanguage"), keyboard=Keyboard.LANGUAGE)
        outbound = render_reply("555", reply, Language.EN)
        assert outbound.chat_id == "555"
        assert outbound.text.split("\n")[0] == "Welcome to Smart Grievance Bot."
        assert outbound.reply_markup == language_keyboard()

    def test_summary_appended(self):
        draft = Draft(category_id=3, category_name="Waste Management", description="Overflowing bins", location="Market Road")
        reply = Reply(("confirmPrompt",), keyboard=Keyboard.CONFIRMATION, summary=draft)
        outbound = render_reply("555", reply, Language.EN)
        assert outbound.text == (
            "Please confirm your complaint details.\n\n"
            "Category: Waste Management\n"
            "Description: Overflowing bins\n"
            "Location: Market Road"
        )

    def test_category_reply_uses_catalog(self):
        outbound = render_reply("555", Reply(("chooseCategory",), keyboard=Keyboard.CATEGORY), Language.EN, CATEGORIES)
        assert outbound.reply_markup == category_keyboard(CATEGORIES)

    def test_plain_reply_has_no_markup(self):
        assert render_reply("555", Reply(("help",)), Language.EN).reply_markup is None


def test_build_summary_with_empty_fields():
    assert build_summary(Language.EN, Draft()).splitlines() == ["Category: -", "Description: -", "Location: -"]
