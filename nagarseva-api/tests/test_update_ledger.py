from nagarseva.models import IngestedUpdate
from nagarseva.services.update_ledger import claim_update


def recorded(db, update_id):
    return db.query(IngestedUpdate).filter(IngestedUpdate.update_id == update_id).count()


class TestClaimUpdate:
    def test_first_claim_succeeds(self, db):
        assert claim_update(db, 1001) is True
        db.commit()
        assert recorded(db, 1001) == 1

    def test_second_claim_is_duplicate(self, db):
        assert claim_update(db, 1001) is True
        db.commit()
        assert claim_update(db, 1001) is False
        db.commit()
        assert db.query(IngestedUpdate).count() == 1

    def test_rolled_back_claim_is_not_recorded(self, db):
        assert claim_update(db, 2002) is True
        db.rollback()
        assert recorded(db, 2002) == 0
        assert claim_update(db, 2002) is True
