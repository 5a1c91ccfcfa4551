from datetime import date, datetime

from freestyle_cup import models
from freestyle_cup.catalog import acts_by_category, category_for_act, list_acts
from freestyle_cup.system_status import capabilities_at


def _starter(**kw):
    kw.setdefault("birthdate", date(2012, 1, 1))
    return models.Starter(firstname="X", lastname="Y", **kw)


def test_single_act_category_follows_flags(categories):
    female = models.Act(is_pair=False, participants=[_starter(single_female=True)])
    male = models.Act(is_pair=False, participants=[_starter(single_male=True)])

    assert category_for_act(categories, female).name == "Einer Schueler"
    assert category_for_act(categories, male).name == "Einer Schueler m"


def test_pair_act_uses_pair_category(categories):
    act = models.Act(is_pair=True, participants=[_starter(pair=True), _starter(pair=True, birthdate=date(1990, 1, 1))])
    assert category_for_act(categories, act).name == "Paare"


def test_too_old_or_sonderpokal_fits_nowhere(categories):
    old = models.Act(is_pair=False, participants=[_starter(single_female=True, birthdate=date(2001, 1, 1))])
    special = models.Act(is_pair=False, participants=[_starter(single_female=True, single_sonderpokal=True)])

    assert category_for_act(categories, old) is None
    assert category_for_act(categories, special) is None


def test_act_without_participants_fits_nowhere(categories):
    assert category_for_act(categories, models.Act(is_pair=False, participants=[])) is None


def test_acts_by_category_skips_unordered(session, categories, make_starter):
    make_starter("Anna", "Roller", single_female=True)
    make_starter("Bea", "Roller", single_female=True)
    acts = sorted(list_acts(session), key=lambda a: a.participants[0].firstname)
    session.get(models.Act, acts[1].id).order = 1
    session.commit()

    grouped = acts_by_category(session)
    assert [a.id for a in grouped["Einer Schueler"]] == [acts[1].id]
    assert grouped["Paare"] == []


def test_capabilities_window():
    start, end = datetime(2026, 1, 1), datetime(2026, 3, 1)
    assert capabilities_at(datetime(2026, 2, 1), start, end, None).can_register_starter is True
    assert capabilities_at(datetime(2026, 4, 1), start, end, None).can_register_starter is False
    assert capabilities_at(datetime(2026, 4, 1), start, end, datetime(2026, 5, 1)).can_edit_acts is True
    assert capabilities_at(datetime(2025, 12, 1), None, None, None).can_register_starter is True
