from dataclasses import replace

from nagarseva.models import ChatSession
from nagarseva.services.session_store import SessionStore
from nagarseva.services.state_machine import ConversationState, Draft, Language


class TestSessionStore:
    def test_load_creates_default_session(self, db):
        store = SessionStore(db)
        session = store.load("555")
        db.commit()

        assert session.state == ConversationState.AWAITING_LANGUAGE
        assert session.draft == Draft()
        row = db.query(ChatSession).filter(ChatSession.chat_id == "555").one()
        assert row.state == "awaiting_language"

    def test_load_twice_keeps_one_row(self, db):
        store = SessionStore(db)
        store.load("555")
        store.load("555")
        db.commit()
        assert db.query(ChatSession).count() == 1

    def test_upsert_then_load_survives_new_store(self, db):
        store = SessionStore(db)
        session = store.load("555")
        draft = Draft(category_id=3, category_name="Waste Management", description="Garbage for five days")
        store.upsert(
            replace(session, state=ConversationState.AWAITING_LOCATION, language=Language.HI, draft=draft, account_id=None)
        )
        db.commit()

        reloaded = SessionStore(db).load("555")
        assert reloaded.state == ConversationState.AWAITING_LOCATION
        assert reloaded.language == Language.HI
        assert reloaded.draft == draft

    def test_corrupted_draft_loads_as_empty(self, db):
        db.add(ChatSession(chat_id="777", state="awaiting_location", language="mr", draft_json="{broken"))
        db.commit()

        session = SessionStore(db).load("777")
        assert session.draft == Draft()
        assert session.state == ConversationState.AWAITING_LOCATION
        assert session.language == Language.MR

    def test_unknown_stored_state_and_language_fall_back(self, db):
        db.add(ChatSession(chat_id="888", state="haunted", language="fr", draft_json=None))
        db.commit()

        session = SessionStore(db).load("888")
        assert session.state == ConversationState.AWAITING_LANGUAGE
        assert session.language == Language.EN
