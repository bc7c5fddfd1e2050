"""Road and traffic conditions provider."""

from civic_assistant.domain import Location, TrafficPayload, UserContext
from civic_assistant.providers.base import ProviderClient, json_template

TRAFFIC_TEMPLATE = {
    "conditions": "Light/Moderate/Heavy",
    "estimatedDelay": "additional minutes or N/A",
    "closures": ["list of road closures"],
    "accidents": ["list of accidents"],
    "hotspots": ["list of congestion areas"],
}


class TrafficProvider(ProviderClient[TrafficPayload]):
    domain = "traffic"
    payload_model = TrafficPayload
    system_message = (
        "You are a traffic data API. Provide current traffic information from reliable "
        "sources like Google Maps, Waze, or local traffic authorities."
    )

    def build_prompt(self, location: Location, user_context: UserContext) -> str:
        return "\n".join([
            f"Get current traffic conditions for residents of {location.address} "
            "and surrounding major roads.",
            "Return data in JSON format:",
            json_template(TRAFFIC_TEMPLATE),
            "Only return the JSON object.",
        ])
