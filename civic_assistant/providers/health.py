"""Public health, pollen and allergen provider."""

from civic_assistant.domain import HealthPayload, Location, UserContext
from civic_assistant.providers.base import ProviderClient, json_template

HEALTH_TEMPLATE = {
    "pollenCount": "Low/Moderate/High",
    "fluActivity": "Low/Moderate/High",
    "allergens": ["list", "of", "active", "allergens"],
    "covidUpdates": ["relevant covid alerts if any"],
    "healthAdvisories": ["list of current health advisories"],
}


class HealthProvider(ProviderClient[HealthPayload]):
    domain = "health"
    payload_model = HealthPayload
    system_message = (
        "You are a health data API. Provide current health information from CDC, local "
        "health departments, and pollen tracking services."
    )

    def build_prompt(self, location: Location, user_context: UserContext) -> str:
        lines = [
            f"Get current health alerts for residents of {location.address} including "
            "pollen count, flu activity, and health advisories.",
        ]
        if user_context.allergies:
            lines.append(f"Pay special attention to these allergens: {', '.join(user_context.allergies)}.")
        if user_context.medications:
            lines.append(
                "Mention advisories relevant to people taking: "
                f"{', '.join(user_context.medications)}."
            )
        lines += [
            "Return data in JSON format:",
            json_template(HEALTH_TEMPLATE),
            "Only return the JSON object.",
        ]
        return "\n".join(lines)
