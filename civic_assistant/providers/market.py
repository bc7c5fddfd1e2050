"""Bank holiday, market closure and business-hours provider (date-scoped)."""

from civic_assistant.domain import Location, MarketPayload, UserContext
from civic_assistant.providers.base import ProviderClient, json_template

MARKET_TEMPLATE = {
    "bankHolidays": ["list of bank holiday notices if any"],
    "marketClosures": ["stock market closure notices if any"],
    "businessHours": ["modified business hour notices if any"],
    "governmentOffices": ["government office closure notices if any"],
}


class MarketProvider(ProviderClient[MarketPayload]):
    domain = "market"
    payload_model = MarketPayload
    date_scoped = True
    system_message = (
        "You are a business information API. Provide current information about business "
        "closures, holidays, and market status."
    )

    def build_prompt(self, location: Location, user_context: UserContext) -> str:
        today = self._today()
        today_text = f"{today:%A}, {today:%B} {today.day}, {today.year}"
        return "\n".join([
            f"Check if today ({today_text}) has any business impacts for residents of {location.address}:",
            "- Bank holidays or closures",
            "- Stock market closures",
            "- Modified business hours for major retailers/services",
            "- Government office closures",
            "Return data in JSON format:",
            json_template(MARKET_TEMPLATE),
            "Only return the JSON object.",
        ])
