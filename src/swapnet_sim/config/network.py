"""Demo network — eight swap stations across Delhi NCR.

Used when the engine is constructed without a station list.  Real networks
come from ``swapnet_sim.adapters.open_charge_map``.
"""

from swapnet_sim.models.network import GeoPosition, Station

# id, name, location, lat, lng, chargers, inventory_cap, current_inventory, coverage_radius
_DEMO_SITES: list[tuple[str, str, str, float, float, int, int, int, float]] = [
    ("station-cp", "Connaught Place Hub", "New Delhi", 28.6315, 77.2167, 10, 40, 32, 4.0),
    ("station-ns", "Nehru Place", "South Delhi", 28.5494, 77.2510, 8, 32, 26, 3.0),
    ("station-dw", "Dwarka Sector 21", "Dwarka", 28.5523, 77.0588, 6, 24, 20, 3.0),
    ("station-rh", "Rohini West", "North West Delhi", 28.7150, 77.1150, 6, 24, 18, 3.0),
    ("station-ld", "Laxmi Nagar", "East Delhi", 28.6304, 77.2773, 8, 32, 24, 3.0),
    ("station-gc", "Cyber City", "Gurugram", 28.4950, 77.0895, 12, 48, 40, 4.0),
    ("station-nd", "Noida Sector 18", "Noida", 28.5708, 77.3261, 10, 40, 30, 4.0),
    ("station-kb", "Karol Bagh", "Central Delhi", 28.6519, 77.1909, 6, 24, 19, 2.0),
]


def default_stations() -> list[Station]:
    """Fresh copies of the demo network (safe to mutate)."""
    from swapnet_sim.engine.geo import geo_to_percent  # engine imports config

    stations = []
    for sid, name, location, lat, lng, chargers, cap, inventory, radius in _DEMO_SITES:
        stations.append(Station(
            id=sid,
            name=name,
            location=location,
            position=geo_to_percent(lat, lng),
            geo_position=GeoPosition(lat=lat, lng=lng),
            chargers=chargers,
            active_chargers=chargers,
            bays=chargers * 5,
            inventory_cap=cap,
            current_inventory=inventory,
            charging_batteries=min(chargers, cap - inventory),
            coverage_radius=radius,
        ))
    return stations
