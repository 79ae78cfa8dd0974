import pytest

from askai_core.chips.normalizer import FLIGHT_FIELDS, HOTEL_FIELDS, normalize, stops_label
from askai_core.domain.exceptions import ValidationError


def test_duplicate_airlines_collapse():
    assert normalize({"preferred_airlines": ["XY", "XY"]}, "flight") == {"XY"}


def test_empty_values_produce_no_chips():
    assert normalize({"trip_duration": "", "preferred_airlines": []}, "flight") == set()


def test_stops_template():
    chips = normalize({"stops_preference": ["0", "1", "2"]}, "flight")
    assert chips == {"Non-stop", "1 stop", "2 stops"}
    assert stops_label("3") == "3 stops"


def test_flight_entity_full_table():
    entity = {
        "trip_duration": "3 days",
        "preferred_airlines": ["Saudia", ""],
        "not_preferred_airlines": ["flynas"],
        "preferred_departure_time": ["Morning"],
        "preferred_arrival_time": ["Evening"],
        "preferred_return_time": ["Night"],
        "preferred_flight_duration": "5h",
        "preferred_layover_airport_or_city": ["DXB"],
        "preferred_layover_duration": "2",
        "preferred_baggage_preference": "Checked",
        "checked_baggage_weight_preference": ["23kg"],
        "flight_budget": "SAR 2000",
        "flight_amenities": ["Wi-Fi"],
        "other_flight_preferences": ["Window seat"],
        "chips": ["Server label", ""],
        "unknown_field": ["ignored"],
    }
    assert normalize(entity, "flight") == {
        "Trip duration: 3 days",
        "Saudia",
        "Not flynas",
        "Departure: Morning",
        "Arrival: Evening",
        "Return: Night",
        "Flight duration: 5h",
        "Layover at DXB",
        "Layover duration: 2 hours",
        "Baggage: Checked",
        "Baggage weight 23kg",
        "Budget: SAR 2000",
        "Wi-Fi",
        "Window seat",
        "Server label",
    }


def test_hotel_entity_full_table():
    entity = {
        "star_rating": ["4", "5"],
        "preferred_user_rating": "8+",
        "stay_budget": "SAR 900",
        "amenities": ["Pool"],
        "accommodation_type": "Resort",
        "preferred_room_type": ["Suite"],
        "preferred_hotel_names": ["Hilton Riyadh"],
        "preferred_stay_location": "Old Town",
        "preferred_hotel_brand": ["Marriott"],
        "other_stay_preferences": ["Late checkout"],
    }
    assert normalize(entity, "hotel") == {
        "4 star",
        "5 star",
        "User Ratings: 8+",
        "Budget: SAR 900",
        "Pool",
        "Accommodation Type: Resort",
        "Suite",
        "Hilton Riyadh",
        "Near Old Town",
        "Marriott",
        "Late checkout",
    }


def test_user_rating_falls_back_to_first_list_element():
    assert normalize({"preferred_user_rating": ["9+", "8+"]}, "hotel") == {"User Ratings: 9+"}
    assert normalize({"preferred_user_rating": []}, "hotel") == set()


def test_scalar_without_list_fallback_ignores_lists():
    assert normalize({"flight_budget": ["SAR 100"]}, "flight") == set()


def test_malformed_values_degrade_to_no_chip():
    entity = {
        "trip_duration": None,
        "preferred_airlines": "XY",
        "not_preferred_airlines": [None, 3, ""],
        "stops_preference": None,
        "flight_budget": 1200,
        "chips": "not-a-list",
    }
    assert normalize(entity, "flight") == set()


def test_non_mapping_entity_is_empty():
    assert normalize(None, "flight") == set()
    assert normalize(["XY"], "hotel") == set()


def test_domain_isolation():
    entity = {
        "preferred_airlines": ["XY"],
        "flight_budget": "SAR 100",
        "amenities": ["Pool"],
        "stay_budget": "SAR 900",
        "chips": ["Shared"],
    }
    flight = normalize(entity, "flight")
    hotel = normalize(entity, "hotel")
    assert flight == {"XY", "Budget: SAR 100", "Shared"}
    assert hotel == {"Pool", "Budget: SAR 900", "Shared"}
    assert flight & hotel == {"Shared"}
    assert not {r.key for r in FLIGHT_FIELDS} & {r.key for r in HOTEL_FIELDS}


def test_unknown_domain_is_rejected():
    with pytest.raises(ValidationError):
        normalize({}, "train")
