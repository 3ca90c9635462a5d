"""
Shared constants for the contextual bundle suggestion system.

This module contains the scoring weights, run defaults and category filters
used across the pipeline, so that the engine, the loaders and the command-line
tools agree on a single set of values.
"""

# ============================================================================
# Scoring Weights
# ============================================================================

# Respective weight of overall popularity (opop), topical coherence (tcoh)
# and estimated appreciation (eapp) in the bundle score
C_OPOP = 1.0
C_TCOH = 1.0
C_EAPP = 10.0

# Weight of pivot similarity vs. appreciation when growing a bundle:
# (PIVOT_SIMILARITY_WEIGHT * tsim + eapp) / (PIVOT_SIMILARITY_WEIGHT + 1)
PIVOT_SIMILARITY_WEIGHT = 2.0


# ============================================================================
# Run Defaults
# ============================================================================

DEFAULT_BUNDLES_TO_RETURN = 10
DEFAULT_VENUES_PER_BUNDLE = 5
DEFAULT_CREATE_FACTOR = 10  # bundles to create = factor * bundles to return


# ============================================================================
# Ratings
# ============================================================================

# Profile ratings are given on a 0..4 scale (-1 = unable to rate)
RATING_SCALE = 4.0
PROFILE_RATING_COLUMN = 3

# Normalized ratings considered "highly rated" when explaining a suggestion
RELEVANT_RATINGS = (0.75, 1.0)


# ============================================================================
# Taxonomy
# ============================================================================

ROOT_CATEGORY_ID = "root"
ROOT_CATEGORY_ICON = ("root", ".png")


# ============================================================================
# Category Blacklist (non-touristic Foursquare categories)
# ============================================================================

# A local venue is dropped when every one of its categories is listed here
DEFAULT_CATEGORY_BLACKLIST = frozenset({
    "530e33ccbcbc57f1066bbfe4",  # States & Municipalities
    "50aa9e094b90af0d42d5de0d",  # City
    "5345731ebcbc57f1066c39b2",  # County
    "530e33ccbcbc57f1066bbff7",  # Country
    "530e33ccbcbc57f1066bbff8",  # State
    "530e33ccbcbc57f1066bbff3",  # Town
    "4bf58dd8d48988d196941735",  # Hospital
    "4bf58dd8d48988d124941735",  # Office
    "4c38df4de52ce0d596b336e1",  # Parking
    "4e67e38e036454776db1fb3a",  # Residence
    "5032891291d4c4b30a586d68",  # Assisted Living
    "4bf58dd8d48988d103941735",  # Home (private)
    "4f2a210c4b9023bd5841ed28",  # Housing Development
    "4d954b06a243a5684965b473",  # Residential Building (Apartment / Condo)
    "4bf58dd8d48988d1d5941735",  # Hotel Bar
    "4d4b7105d754a06379d81259",  # Travel & Transport
    "4bf58dd8d48988d1ed931735",  # Airport
    "4bf58dd8d48988d1ef931735",  # Airport Food Court
    "4bf58dd8d48988d1f0931735",  # Airport Gate
    "4eb1bc533b7b2c5b1d4306cb",  # Airport Lounge
    "4bf58dd8d48988d1eb931735",  # Airport Terminal
    "4bf58dd8d48988d1ec931735",  # Airport Tram
    "4bf58dd8d48988d1f7931735",  # Plane
    "4bf58dd8d48988d12d951735",  # Boat or Ferry
    "52f2ab2ebcbc57f1066b8b4b",  # Border Crossing
    "4bf58dd8d48988d1fe931735",  # Bus Station
    "4bf58dd8d48988d12b951735",  # Bus Line
    "52f2ab2ebcbc57f1066b8b4f",  # Bus Stop
    "52f2ab2ebcbc57f1066b8b50",  # Cable Car
    "4bf58dd8d48988d1f6931735",  # General Travel
    "4bf58dd8d48988d1fa931735",  # Hotel
    "4bf58dd8d48988d1f8931735",  # Bed & Breakfast
    "4f4530a74b9074f6e4fb0100",  # Boarding House
    "4bf58dd8d48988d1ee931735",  # Hostel
    "4bf58dd8d48988d132951735",  # Hotel Pool
    "4bf58dd8d48988d1fb931735",  # Motel
    "4bf58dd8d48988d12f951735",  # Resort
    "4bf58dd8d48988d133951735",  # Roof Deck
    "52f2ab2ebcbc57f1066b8b4c",  # Intersection
    "4bf58dd8d48988d1fc931735",  # Light Rail
    "4f2a23984b9023bd5841ed2c",  # Moving Target
    "52f2ab2ebcbc57f1066b8b53",  # RV Park
    "4bf58dd8d48988d1ef941735",  # Rental Car Location
    "4d954b16a243a5684b65b473",  # Rest Area
    "4bf58dd8d48988d1f9931735",  # Road
    "52f2ab2ebcbc57f1066b8b52",  # Street
    "4bf58dd8d48988d1fd931735",  # Subway
    "4bf58dd8d48988d130951735",  # Taxi
    "52f2ab2ebcbc57f1066b8b4d",  # Toll Booth
    "52f2ab2ebcbc57f1066b8b4e",  # Toll Plaza
    "4f4530164b9074f6e4fb00ff",  # Tourist Information Center
    "4bf58dd8d48988d129951735",  # Train Station
    "4f4531504b9074f6e4fb0102",  # Platform
    "4bf58dd8d48988d12a951735",  # Train
    "52f2ab2ebcbc57f1066b8b51",  # Tram
    "4f04b25d2fb6e1c99f3db0c0",  # Travel Lounge
    "52f2ab2ebcbc57f1066b8b4a",  # Tunnel
})


# ============================================================================
# Foursquare API
# ============================================================================

FOURSQUARE_API_URL = "https://api.foursquare.com/v2/venues"
FOURSQUARE_TIMEOUT = 20  # seconds
MAX_RETRIES = 3
RETRY_DELAY = 1.0  # seconds
