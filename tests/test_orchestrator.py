from conftest import CAMPUS, make_candidate, make_roster, sent_to

from carpoolmap.core.bootstrap import MapBootstrapGuard
from carpoolmap.core.orchestrator import SyncOrchestrator
from carpoolmap.core.markers import (
    VIEWER_COMPANY_ID,
    VIEWER_START_ID,
    roster_marker_id,
    temporary_marker_id,
)
from carpoolmap.domain.models import CarpoolAddress, MarkerKind, RequestSets, SidebarContext
from carpoolmap.infrastructure.directions import DirectionsRouteDrawer, StraightLineDirections
from carpoolmap.infrastructure.folium_surface import folium_map_factory

HOME = CarpoolAddress(place_name="12 Home St", center=(-71.30, 42.45))
OFFICE = CarpoolAddress(place_name="1 Office Pl", center=(-71.01, 42.35))


def _temporary(surface):
    return [m for m, (_, kind) in surface.markers.items() if kind == MarkerKind.TEMPORARY]


def test_map_load_draws_default_route_and_roster(loaded_map, drawer, driver, alice, bob):
    orchestrator, surface = loaded_map(driver, roster=make_roster(alice, bob))

    assert orchestrator.ready
    assert drawer.draws == [(driver.start, driver.company)]
    assert {roster_marker_id("alice"), roster_marker_id("bob")} <= set(surface.markers)
    assert surface.markers[VIEWER_START_ID][0] == driver.start
    assert surface.markers[VIEWER_COMPANY_ID][0] == driver.company


def test_driver_selects_rider_in_roster(loaded_map, drawer, driver, alice):
    orchestrator, surface = loaded_map(
        driver, roster=make_roster(alice), requests=RequestSets(sent=sent_to(driver, alice))
    )

    orchestrator.on_user_select("alice")

    assert drawer.draws[-1] == (driver.start, alice.start_poi, alice.company, driver.company)
    assert orchestrator.state().other_user_id == "alice"
    assert _temporary(surface) == []


def test_viewer_role_route_skips_viewer_markers(loaded_map, drawer, viewer_account, alice):
    orchestrator, surface = loaded_map(
        viewer_account,
        roster=make_roster(alice),
        requests=RequestSets(sent=sent_to(viewer_account, alice)),
    )
    assert drawer.draws == []

    orchestrator.on_user_select("alice")

    assert drawer.draws == [(alice.start_poi, alice.company)]
    assert VIEWER_START_ID not in surface.markers
    assert VIEWER_COMPANY_ID not in surface.markers


def test_absent_candidates_swap_temporary_marker(loaded_map, driver, alice, bob, carol):
    orchestrator, surface = loaded_map(
        driver, roster=make_roster(alice), requests=RequestSets(sent=sent_to(driver, bob, carol))
    )

    orchestrator.on_user_select("bob")
    assert _temporary(surface) == [temporary_marker_id("bob")]
    assert surface.markers[temporary_marker_id("bob")][0] == bob.company

    orchestrator.on_user_select("carol")
    assert _temporary(surface) == [temporary_marker_id("carol")]
    assert surface.ops.index(("remove", temporary_marker_id("bob"))) < surface.ops.index(
        ("place", temporary_marker_id("carol"))
    )


def test_roster_update_absorbs_temporary_marker_once(loaded_map, drawer, driver, alice, bob):
    orchestrator, surface = loaded_map(
        driver, roster=make_roster(alice), requests=RequestSets(sent=sent_to(driver, bob))
    )
    orchestrator.on_user_select("bob")
    draws_before = len(drawer.draws)

    orchestrator.on_roster_updated(make_roster(alice, bob))
    orchestrator.on_roster_updated(make_roster(alice, bob))

    assert surface.count("remove", temporary_marker_id("bob")) == 1
    assert _temporary(surface) == []
    assert roster_marker_id("bob") in surface.markers
    assert orchestrator.state().other_user_id == "bob"
    # misma ruta: no se redibuja
    assert len(drawer.draws) == draws_before


def test_roster_update_removes_stale_markers(loaded_map, driver, alice, bob):
    orchestrator, surface = loaded_map(driver, roster=make_roster(alice, bob))

    orchestrator.on_roster_updated(make_roster(bob))

    assert roster_marker_id("alice") not in surface.markers
    assert orchestrator.state().roster_ids == ("bob",)


def test_clearing_selection_restores_default_route(loaded_map, drawer, driver, alice, bob):
    orchestrator, surface = loaded_map(
        driver, roster=make_roster(alice), requests=RequestSets(sent=sent_to(driver, bob))
    )
    orchestrator.on_user_select("bob")

    orchestrator.on_user_select("")

    assert orchestrator.selected_user_id is None
    assert orchestrator.other_user is None
    assert _temporary(surface) == []
    assert drawer.draws[-1] == (driver.start, driver.company)


def test_unresolvable_selection_falls_back(loaded_map, drawer, driver, alice):
    orchestrator, _ = loaded_map(driver, roster=make_roster(alice))

    orchestrator.on_user_select("nobody")

    assert orchestrator.selected_user is None
    assert orchestrator.state().points == (driver.start, driver.company)
    assert len(drawer.draws) == 1


def test_missing_candidate_coordinates_skip_route(loaded_map, drawer, driver, alice):
    no_poi = make_candidate("dave", start_poi=None)
    orchestrator, surface = loaded_map(
        driver, roster=make_roster(alice), requests=RequestSets(sent=sent_to(driver, no_poi))
    )

    orchestrator.on_user_select("dave")

    assert _temporary(surface) == []
    assert surface.count("remove", temporary_marker_id("dave")) == 1
    assert orchestrator.other_user is None
    assert orchestrator.state().points == (driver.start, driver.company)


def test_view_route_click_for_roster_candidate(loaded_map, drawer, rider, alice):
    orchestrator, _ = loaded_map(rider, roster=make_roster(alice))

    orchestrator.on_view_route_click(rider, alice)

    assert drawer.draws[-1] == (alice.start_poi, rider.start, rider.company, alice.company)
    assert orchestrator.other_user == alice


def test_view_route_click_for_unselected_outsider_is_ignored(loaded_map, drawer, driver, alice, bob):
    orchestrator, surface = loaded_map(driver, roster=make_roster(alice))

    orchestrator.on_view_route_click(driver, bob)

    assert _temporary(surface) == []
    assert orchestrator.other_user is None
    assert drawer.draws == [(driver.start, driver.company)]


def test_selection_before_load_is_replayed(loaded_map, drawer, driver, alice, bob):
    orchestrator, surface = loaded_map(
        driver,
        roster=make_roster(alice),
        requests=RequestSets(sent=sent_to(driver, bob)),
        load=False,
    )
    orchestrator.on_user_select("bob")
    orchestrator.on_view_route_click(driver, bob)
    assert surface.ops == []
    assert drawer.draws == []

    surface.load()

    assert _temporary(surface) == [temporary_marker_id("bob")]
    assert drawer.draws == [(driver.start, bob.start_poi, bob.company, driver.company)]


def test_view_route_click_without_roster_is_dropped(loaded_map, drawer, driver, alice):
    orchestrator, surface = loaded_map(driver)
    orchestrator.on_view_route_click(driver, alice)
    assert orchestrator.other_user is None
    assert _temporary(surface) == []


def test_viewer_address_override(loaded_map, drawer, viewer_account, alice):
    orchestrator, surface = loaded_map(
        viewer_account,
        roster=make_roster(alice),
        requests=RequestSets(sent=sent_to(viewer_account, alice)),
    )

    orchestrator.on_address_changed(start=HOME)
    assert VIEWER_START_ID not in surface.markers
    assert drawer.draws == []

    orchestrator.on_address_changed(company=OFFICE)
    assert surface.markers[VIEWER_START_ID][0] == HOME.center
    assert surface.markers[VIEWER_COMPANY_ID][0] == OFFICE.center
    assert drawer.draws[-1] == (HOME.center, OFFICE.center)

    orchestrator.on_user_select("alice")
    assert drawer.draws[-1] == (HOME.center, alice.start_poi, alice.company, OFFICE.center)


def test_sidebar_switch_clears_selection(loaded_map, drawer, driver, alice, bob):
    orchestrator, surface = loaded_map(
        driver, roster=make_roster(alice), requests=RequestSets(sent=sent_to(driver, bob))
    )
    orchestrator.on_user_select("bob")

    orchestrator.on_sidebar_changed(SidebarContext.REQUESTS)

    assert orchestrator.selected_user_id is None
    assert orchestrator.sidebar == SidebarContext.REQUESTS
    assert _temporary(surface) == []
    assert drawer.draws[-1] == (driver.start, driver.company)


def test_sidebar_switch_to_same_context_keeps_selection(loaded_map, driver, alice):
    orchestrator, _ = loaded_map(
        driver, roster=make_roster(alice), requests=RequestSets(sent=sent_to(driver, alice))
    )
    orchestrator.on_user_select("alice")
    orchestrator.on_sidebar_changed(SidebarContext.EXPLORE)
    assert orchestrator.selected_user_id == "alice"


def test_requests_update_dropping_selection(loaded_map, driver, alice, bob):
    orchestrator, surface = loaded_map(
        driver, roster=make_roster(alice), requests=RequestSets(sent=sent_to(driver, bob))
    )
    orchestrator.on_user_select("bob")

    orchestrator.on_requests_updated(RequestSets())

    assert orchestrator.other_user is None
    assert _temporary(surface) == []
    assert orchestrator.state().points == (driver.start, driver.company)


def test_requests_update_resolving_pending_selection(loaded_map, drawer, driver, alice, bob):
    orchestrator, surface = loaded_map(driver, roster=make_roster(alice))
    orchestrator.on_user_select("bob")
    assert _temporary(surface) == []

    orchestrator.on_requests_updated(RequestSets(sent=sent_to(driver, bob)))

    assert _temporary(surface) == [temporary_marker_id("bob")]
    assert drawer.draws[-1][1] == bob.start_poi


def test_state_snapshot(loaded_map, driver, alice, bob):
    orchestrator, _ = loaded_map(
        driver, roster=make_roster(alice), requests=RequestSets(sent=sent_to(driver, bob))
    )
    orchestrator.on_user_select("bob")

    state = orchestrator.state()

    assert state.ready
    assert state.selected_user_id == "bob"
    assert state.other_user_id == "bob"
    assert state.temporary_marker_user_id == "bob"
    assert state.roster_ids == ("alice",)
    assert state.sidebar == SidebarContext.EXPLORE


def test_map_loaded_outside_event_loop(driver, alice):
    guard = MapBootstrapGuard(folium_map_factory(), viewer_center=CAMPUS)
    route_drawer = DirectionsRouteDrawer(lambda: guard.surface, StraightLineDirections())
    orchestrator = SyncOrchestrator(guard, route_drawer)
    orchestrator.on_viewer_updated(driver)
    orchestrator.on_roster_updated(make_roster(alice))

    surface = guard.try_initialize("map", driver, on_ready=orchestrator.on_map_loaded)
    surface.load()

    assert orchestrator.ready
    assert roster_marker_id("alice") in surface.markers
    # sin loop no hay ruta: no se registra como dibujada
    assert orchestrator.state().points is None
    assert surface.route == []


def test_rejected_draw_is_retried_on_next_transition(loaded_map, drawer, driver, alice):
    drawer.accept = False
    orchestrator, _ = loaded_map(driver, roster=make_roster(alice))
    assert orchestrator.state().points is None

    drawer.accept = True
    orchestrator.on_roster_updated(make_roster(alice))

    assert drawer.draws == [(driver.start, driver.company)] * 2
    assert orchestrator.state().points == (driver.start, driver.company)


def test_refreshed_request_recomputes_counterpart_route(loaded_map, drawer, driver, alice, bob):
    orchestrator, surface = loaded_map(
        driver, roster=make_roster(alice), requests=RequestSets(sent=sent_to(driver, bob))
    )
    orchestrator.on_user_select("bob")

    moved = make_candidate("bob", role=bob.role, company=(-71.02, 42.38), start_poi=(-71.16, 42.32))
    orchestrator.on_requests_updated(RequestSets(sent=sent_to(driver, moved)))

    assert orchestrator.other_user.company == moved.company
    assert surface.markers[temporary_marker_id("bob")][0] == moved.company
    assert drawer.draws[-1] == (driver.start, moved.start_poi, moved.company, driver.company)
