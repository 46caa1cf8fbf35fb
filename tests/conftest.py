import pytest


@pytest.fixture
def inventory_records():
    """A small multi-team inventory with standalone modules."""
    return [
        {"module": "mod-inventory", "application": "Inventory", "team": "Folijet", "product owner": "Anna", "dev lead/contact": "Dev One"},
        {"module": "mod-inventory-storage", "application": "Inventory", "team": "Folijet", "product owner": "Anna", "dev lead/contact": ""},
        {"module": "mod-data-import", "application": "Data Import", "team": "Folijet", "product owner": "", "dev lead/contact": "Dev Two"},
        {"module": "mod-circulation", "application": "Circulation", "team": "Vega", "product owner": "Pat", "dev lead/contact": "Dev Three"},
        {"module": "mod-feesfines", "application": "", "team": "Vega", "product owner": "Pat", "dev lead/contact": "Dev Four"},
        {"module": "mod-users", "application": "Users", "team": "Volaris", "product owner": "Kim", "dev lead/contact": "Dev Five"},
    ]
