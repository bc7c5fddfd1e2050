"""Public safety incidents provider."""

from civic_assistant.domain import CrimePayload, Location, UserContext
from civic_assistant.providers.base import ProviderClient, json_template

CRIME_TEMPLATE = {
    "shootings": ["list of recent shooting incidents with general area only, no specific addresses"],
    "robberies": ["list of recent robbery incidents with general area only"],
    "incidents": ["other notable safety incidents"],
    "areasToAvoid": ["general areas with increased police activity or safety concerns"],
}


class CrimeProvider(ProviderClient[CrimePayload]):
    domain = "crime"
    payload_model = CrimePayload
    system_message = (
        "You are a public safety data API. Only report verified crime incidents from official "
        "sources like police departments or news outlets. Never include specific addresses, "
        "only general areas."
    )

    def build_prompt(self, location: Location, user_context: UserContext) -> str:
        return "\n".join([
            f"Get recent crime and safety information for residents of {location.address} "
            "and surrounding areas (within 5 miles). Focus on incidents from the last 24-48 hours.",
            "Return data in JSON format:",
            json_template(CRIME_TEMPLATE),
            "Only include verified incidents from news sources or police reports. "
            "Use general area descriptions, never specific addresses.",
            "Only return the JSON object.",
        ])
