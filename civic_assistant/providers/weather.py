"""Current weather conditions provider."""

from civic_assistant.domain import Location, UserContext, WeatherPayload
from civic_assistant.providers.base import ProviderClient, json_template

WEATHER_TEMPLATE = {
    "temperature": "number in Fahrenheit",
    "feelsLike": "number in Fahrenheit",
    "conditions": "current weather description",
    "humidity": "percentage number",
    "uvIndex": "UV index number",
    "windSpeed": "speed in mph",
    "precipitation": "yes/no if rain/snow expected today",
    "heatWarning": "true/false if heat advisory in effect",
}


class WeatherProvider(ProviderClient[WeatherPayload]):
    domain = "weather"
    payload_model = WeatherPayload
    system_message = (
        "You are a weather data API. Always return valid JSON format with current, "
        "accurate weather information from reliable sources."
    )

    def build_prompt(self, location: Location, user_context: UserContext) -> str:
        lines = [
            f"Get current weather conditions for {location.address} "
            f"(latitude {location.lat}, longitude {location.lng}).",
        ]
        if user_context.blood_group:
            lines.append(
                f"The resident's blood group is {user_context.blood_group}; "
                "flag heat or cold conditions that call for extra hydration or care."
            )
        lines += [
            "Return data in JSON format with these exact fields:",
            json_template(WEATHER_TEMPLATE),
            "Only return the JSON object, no additional text.",
        ]
        return "\n".join(lines)
