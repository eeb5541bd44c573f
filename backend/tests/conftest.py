import pytest

from vastboard.api import create_app
from vastboard.models import Building, CheckinEvent, Participant, StatusEvent, TripEvent, Venue
from vastboard.store import InMemoryEventStore

from helpers import square, ts


@pytest.fixture
def make_store():
    def _make(*records):
        return InMemoryEventStore(records)
    return _make


@pytest.fixture
def city_store():
    """
    A small city: three participants, four buildings, a morning of pings and trips.

    Buildings 1 and 2 sit in flow cell (0, 0), building 3 in (2, 0) and building 4
    in (0, 2) for cell_size=50.
    """
    records = [
        Participant(1, household_size=2, have_kids=False, age=30, education_level="Graduate",
                    interest_group="A", joviality=0.5),
        Participant(2, household_size=1, have_kids=True, age=41, education_level="Low",
                    interest_group="B", joviality=0.2),
        Participant(3, household_size=3, have_kids=True, age=25, education_level="Bachelors",
                    interest_group="A", joviality=0.9),
        Building(1, square(0, 0), building_type="Residental", max_occupancy=4),
        Building(2, square(20, 20), building_type="Commercial", max_occupancy=20),
        Building(3, square(115, 0), building_type="Commercial", max_occupancy=50),
        Building(4, square(0, 115), building_type="School", max_occupancy=100),
        Venue(10, "Pub", 3),
        Venue(20, "Restaurant", 2),
        StatusEvent(ts("2022-03-01T08:05:00"), 1, (10.0, 10.0), "AtHome"),
        StatusEvent(ts("2022-03-01T08:10:00"), 1, (12.0, 11.0), "AtHome"),
        StatusEvent(ts("2022-03-01T08:15:00"), 2, (11.0, 12.0), "Transport"),
        StatusEvent(ts("2022-03-01T08:20:00"), 3, (160.0, 10.0), "AtWork"),
        StatusEvent(ts("2022-03-01T08:25:00"), 3, None, "AtWork"),
        StatusEvent(ts("2022-03-01T09:05:00"), 1, (120.0, 5.0), "AtWork"),
        StatusEvent(ts("2022-03-01T09:10:00"), 2, (120.0, 6.0), None),
        CheckinEvent(1, ts("2022-03-01T12:00:00"), 10, "Pub"),
        CheckinEvent(2, ts("2022-03-01T12:30:00"), 10, "Pub"),
        CheckinEvent(3, ts("2022-03-01T13:00:00"), 20, "Restaurant"),
        TripEvent(1, ts("2022-03-01T08:30:00"), ts("2022-03-01T08:40:00"), 1, 3, "Work/Home Commute"),
        TripEvent(2, ts("2022-03-01T08:35:00"), ts("2022-03-01T08:55:00"), 2, 3, "Work/Home Commute"),
        TripEvent(3, ts("2022-03-01T08:45:00"), ts("2022-03-01T08:50:00"), 1, 2, "Eating"),
        TripEvent(1, ts("2022-03-01T17:00:00"), ts("2022-03-01T17:12:00"), 3, 1, "Going Back to Home"),
        TripEvent(2, ts("2022-03-01T18:00:00"), ts("2022-03-01T18:30:00"), 4, 99, "Eating"),
    ]
    return InMemoryEventStore(records)


@pytest.fixture
def client(city_store):
    app = create_app(city_store)
    app.config["TESTING"] = True
    with app.test_client() as test_client:
        yield test_client
