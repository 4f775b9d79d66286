"""
Tests for LocationDialog orchestration and the Location -> Place mapping.
"""
import asyncio

import pytest
import requests

from conftest import FakeGeoService, redmond_location
from dialogs import AwaitableResult, DialogStack, LocationDialog, Message, create_place
from dialogs.required_fields import LocationRequiredFieldsDialog
from dialogs.retrievers import RichLocationRetrieverDialog
from domain.models import (
    Address,
    Location,
    LocationDialogResponse,
    LocationOptions,
    LocationRequiredFields,
    LocationSet,
    Point,
    Place,
)

PROMPT = "Where should I ship your widget?"


class RecordingContext:
    def __init__(self):
        self.calls = []
        self.done_values = []
        self.posts = []

    def call(self, dialog, resume):
        self.calls.append(dialog)

    def done(self, value):
        self.done_values.append(value)

    def wait(self, resume):
        pass

    async def post(self, text):
        self.posts.append(text)


def _share_location(lat=47.64, lon=-122.13):
    return Message(location=Point.from_lat_lon(lat, lon))


def test_reverse_geocode_copies_everything_but_street(geo_service):
    stack = DialogStack()
    dialog = LocationDialog(
        "facebook",
        PROMPT,
        LocationOptions.USE_NATIVE_CONTROL | LocationOptions.REVERSE_GEOCODE,
        geospatial_service=geo_service,
    )

    asyncio.run(stack.begin(dialog))
    assert stack.outbox == [PROMPT]
    asyncio.run(stack.send(_share_location()))

    assert stack.completed
    place = stack.result
    assert isinstance(place, Place)
    geo_service.get_locations_by_point.assert_called_once_with(47.64, -122.13)
    address = place.get_postal_address()
    assert address.street_address is None
    assert address.formatted_address is None
    assert address.locality == "Redmond"
    assert address.region == "WA"
    assert address.country == "United States"
    assert address.postal_code == "98052"
    assert place.geo.latitude == 47.64
    assert place.geo.longitude == -122.13


def test_reverse_geocode_skipped_without_option(geo_service):
    stack = DialogStack()
    dialog = LocationDialog("facebook", PROMPT, LocationOptions.USE_NATIVE_CONTROL, geospatial_service=geo_service)

    asyncio.run(stack.begin(dialog))
    asyncio.run(stack.send(_share_location()))

    geo_service.get_locations_by_point.assert_not_called()
    assert stack.result.address is None
    assert stack.result.geo.latitude == 47.64


def test_reverse_geocode_not_called_when_address_present(geo_service):
    stack = DialogStack()
    dialog = LocationDialog(
        "emulator",
        PROMPT,
        LocationOptions.REVERSE_GEOCODE | LocationOptions.SKIP_FINAL_CONFIRMATION,
        geospatial_service=geo_service,
    )

    asyncio.run(stack.begin(dialog))
    asyncio.run(stack.send("1 microsoft way redmond"))

    geo_service.get_locations_by_query.assert_called_once_with("1 microsoft way redmond")
    geo_service.get_locations_by_point.assert_not_called()
    assert stack.result.address.street_address == "1 Microsoft Way"


def test_reverse_geocode_without_result_leaves_address_unset():
    service = FakeGeoService(by_point=LocationSet(estimated_total=1, locations=[Location(name="nowhere")]))
    stack = DialogStack()
    dialog = LocationDialog(
        "facebook",
        PROMPT,
        LocationOptions.USE_NATIVE_CONTROL | LocationOptions.REVERSE_GEOCODE,
        geospatial_service=service,
    )

    asyncio.run(stack.begin(dialog))
    asyncio.run(stack.send(_share_location()))

    assert stack.result.address is None
    assert stack.result.geo is not None


def test_required_fields_prompts_for_missing_street(geo_service):
    stack = DialogStack()
    dialog = LocationDialog(
        "facebook",
        PROMPT,
        LocationOptions.USE_NATIVE_CONTROL | LocationOptions.REVERSE_GEOCODE,
        LocationRequiredFields.STREET_ADDRESS | LocationRequiredFields.POSTAL_CODE,
        geospatial_service=geo_service,
    )

    asyncio.run(stack.begin(dialog))
    asyncio.run(stack.send(_share_location()))

    # postal code came from the geocoder, only the street is asked for
    assert not stack.completed
    assert stack.outbox[-1] == "Please provide the street address."
    asyncio.run(stack.send("1 Microsoft Way"))

    assert stack.completed
    assert stack.result.address.street_address == "1 Microsoft Way"
    assert stack.result.address.postal_code == "98052"
    assert geo_service.get_locations_by_point.call_count == 1


def test_required_fields_dialog_called_once_when_reentered():
    ctx = RecordingContext()
    dialog = LocationDialog(
        "emulator",
        PROMPT,
        required_fields=LocationRequiredFields.LOCALITY,
        geospatial_service=FakeGeoService(),
    )
    asyncio.run(dialog.start(ctx))
    assert isinstance(ctx.calls[0], RichLocationRetrieverDialog)

    response = LocationDialogResponse(location=Location(name="Somewhere"))
    asyncio.run(dialog.resume_after_child_dialog_internal(ctx, AwaitableResult(response)))
    asyncio.run(dialog.resume_after_child_dialog_internal(ctx, AwaitableResult(response)))

    required_calls = [c for c in ctx.calls if isinstance(c, LocationRequiredFieldsDialog)]
    assert len(required_calls) == 1
    assert len(ctx.done_values) == 1
    assert ctx.done_values[0].name == "Somewhere"

    # starting over allows the required dialog again
    asyncio.run(dialog.start(ctx))
    assert dialog.required_dialog_called is False


def test_cancel_returns_none():
    stack = DialogStack()
    asyncio.run(stack.begin(LocationDialog("emulator", PROMPT, geospatial_service=FakeGeoService())))
    asyncio.run(stack.send("Cancel"))

    assert stack.completed
    assert stack.result is None
    assert stack.outbox[-1] == "OK, cancelled."


def test_cancel_from_required_fields_dialog():
    stack = DialogStack()
    dialog = LocationDialog(
        "facebook",
        PROMPT,
        LocationOptions.USE_NATIVE_CONTROL,
        LocationRequiredFields.COUNTRY,
        geospatial_service=FakeGeoService(),
    )
    asyncio.run(stack.begin(dialog))
    asyncio.run(stack.send(_share_location()))
    assert stack.outbox[-1] == "Please provide the country."

    asyncio.run(stack.send("cancel"))
    assert stack.completed
    assert stack.result is None


def test_reset_restarts_the_dialog():
    stack = DialogStack()
    asyncio.run(stack.begin(LocationDialog("emulator", PROMPT, geospatial_service=FakeGeoService())))
    asyncio.run(stack.send("reset"))

    assert not stack.completed
    assert stack.outbox == [PROMPT, "OK, let's start over.", PROMPT]
    assert stack.depth == 2


def test_help_keeps_waiting_for_an_address():
    stack = DialogStack()
    dialog = LocationDialog("emulator", PROMPT, geospatial_service=FakeGeoService())
    asyncio.run(stack.begin(dialog))
    asyncio.run(stack.send("help"))

    assert not stack.completed
    assert stack.outbox[-1] == dialog.resource_manager["help_message"]


def test_create_place_maps_all_fields():
    place = create_place(redmond_location())

    assert place.type == "Address"
    assert place.name == "1 Microsoft Way, Redmond, WA 98052"
    assert place.address.formatted_address == "1 Microsoft Way, Redmond, WA 98052"
    assert place.address.country == "United States"
    assert place.address.locality == "Redmond"
    assert place.address.postal_code == "98052"
    assert place.address.region == "WA"
    assert place.address.street_address == "1 Microsoft Way"
    assert (place.geo.latitude, place.geo.longitude) == (47.64, -122.13)


def test_create_place_without_address_or_point():
    place = create_place(Location(name="Pinned", entity_type="Point"))
    assert place.name == "Pinned"
    assert place.address is None
    assert place.geo is None


def test_create_place_ignores_point_without_coordinates():
    place = create_place(Location(address=Address(locality="Paris"), point=Point(coordinates=[48.8])))
    assert place.address.locality == "Paris"
    assert place.address.street_address is None
    assert place.geo is None


def test_geocoder_failure_reaches_the_host():
    service = FakeGeoService()
    service.get_locations_by_point.side_effect = requests.HTTPError("503 error")
    stack = DialogStack()
    dialog = LocationDialog(
        "facebook",
        PROMPT,
        LocationOptions.USE_NATIVE_CONTROL | LocationOptions.REVERSE_GEOCODE,
        geospatial_service=service,
    )
    asyncio.run(stack.begin(dialog))

    with pytest.raises(requests.HTTPError):
        asyncio.run(stack.send(_share_location()))
    assert not stack.completed


def test_faulted_child_result_propagates():
    ctx = RecordingContext()
    dialog = LocationDialog("emulator", PROMPT, geospatial_service=FakeGeoService())

    with pytest.raises(ValueError, match="child failed"):
        asyncio.run(dialog.resume_after_child_dialog(ctx, AwaitableResult(error=ValueError("child failed"))))
    with pytest.raises(ValueError, match="child failed"):
        asyncio.run(
            dialog.resume_after_child_dialog_internal(ctx, AwaitableResult(error=ValueError("child failed")))
        )
    assert ctx.calls == []
    assert ctx.done_values == []


def test_help_is_not_handed_up_to_the_root():
    dialog = LocationDialog("emulator", PROMPT, geospatial_service=FakeGeoService())

    assert not dialog.is_special_command_response(LocationDialogResponse(message="help"))
    assert dialog.is_special_command_response(LocationDialogResponse(message="Reset"))
    assert dialog.is_special_command_response(LocationDialogResponse(message="cancel"))
