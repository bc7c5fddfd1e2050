"""Air quality index provider."""

from civic_assistant.domain import AirQualityPayload, Location, UserContext
from civic_assistant.providers.base import ProviderClient, json_template

AIR_QUALITY_TEMPLATE = {
    "aqi": "AQI number",
    "quality": "Good/Moderate/Unhealthy/etc",
    "pm25": "PM2.5 value in μg/m³",
    "pollutants": ["list", "of", "main", "pollutants"],
    "healthImpact": "health advisory message if AQI > 100, null otherwise",
}


class AirQualityProvider(ProviderClient[AirQualityPayload]):
    domain = "air_quality"
    payload_model = AirQualityPayload
    system_message = (
        "You are an air quality data API. Return current AQI information from official "
        "sources like AirNow.gov or EPA."
    )

    def build_prompt(self, location: Location, user_context: UserContext) -> str:
        return "\n".join([
            f"Get current air quality index (AQI) for {location.address} "
            f"(latitude {location.lat}, longitude {location.lng}).",
            "Return data in JSON format:",
            json_template(AIR_QUALITY_TEMPLATE),
            "Only return the JSON object.",
        ])
