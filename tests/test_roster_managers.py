from types import SimpleNamespace

from roster_app.importer.pipeline.managers import DEFAULT_MANAGER_KEYWORDS, ManagerPolicy
from roster_app.models import UnitLevel


def _person(name, position):
    return SimpleNamespace(name=name, position=position)


def test_first_employee_matching_any_keyword_wins():
    policy = ManagerPolicy()
    employees = [_person("staff", "一般"), _person("deputy", "統括マネージャー"), _person("head", "営業本部長")]

    assert policy.pick(UnitLevel.DEPARTMENT, employees).name == "deputy"
    assert policy.pick(UnitLevel.DEPARTMENT, list(reversed(employees))).name == "head"


def test_first_employee_wins_within_a_keyword():
    employees = [_person("first", "課長"), _person("second", "課長代理")]

    assert ManagerPolicy().pick(UnitLevel.COURSE, employees).name == "first"


def test_no_match_returns_none():
    employees = [_person("staff", "一般"), _person("blank", None)]

    assert ManagerPolicy().pick(UnitLevel.SECTION, employees) is None
    assert ManagerPolicy().pick(UnitLevel.SECTION, []) is None


def test_custom_keyword_table():
    policy = ManagerPolicy(keywords={UnitLevel.SECTION: ("Lead",)})

    assert policy.pick(UnitLevel.SECTION, [_person("a", "Team Lead")]).name == "a"
    assert policy.pick(UnitLevel.COURSE, [_person("b", "課長")]) is None


def test_default_table_covers_every_level():
    assert set(DEFAULT_MANAGER_KEYWORDS) == set(UnitLevel)
