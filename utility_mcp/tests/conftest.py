import pytest

UTILITY_ID = "65a1b2c3d4e5f6a7b8c9d0e1"


class FakeCursor:
    def __init__(self, rows):
        self._rows = rows

    async def to_list(self, length=None):
        rows = list(self._rows)
        return rows if length is None else rows[:length]


class FakeCollection:
    """Just enough of a motor collection: find_one by equality, canned aggregate output."""

    def __init__(self):
        self.docs = []
        self.aggregate_rows = []
        self.pipelines = []

    async def find_one(self, query, projection=None):
        if query is None:
            return None
        for doc in self.docs:
            if all(doc.get(k) == v for k, v in query.items()):
                return doc
        return None

    def aggregate(self, pipeline):
        self.pipelines.append(pipeline)
        return FakeCursor(self.aggregate_rows)


class FakeDB:
    def __init__(self):
        self._collections = {}

    def __getitem__(self, name):
        if name not in self._collections:
            self._collections[name] = FakeCollection()
        return self._collections[name]


@pytest.fixture
def fake_db():
    return FakeDB()


@pytest.fixture
def utility_doc():
    from bson import ObjectId

    return {
        "_id": ObjectId(UTILITY_ID),
        "name": "Ha Makebe Mini-Grid",
        "acronym": "HMM",
        "country": "Lesotho",
        "address": "Ha Makebe, Berea",
        "systemType": "lv-off-grid",
        "systemDescription": "Solar PV with battery storage",
        "systemComponents": [
            {"component": "PV array", "capacity": 120, "unit": "kWp"},
            {"component": "Battery bank", "capacity": 400, "unit": "kWh"},
        ],
        "numberOfCustomers": 23,
        "isActive": True,
    }
