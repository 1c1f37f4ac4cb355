FRIENDLY_MESSAGES = {
    "ConnectionError": "Unable to connect to a required service. Please try again later.",
    "TimeoutError": "The request took too long. Please try again later.",
    "OperationalError": "Temporary issue while accessing data. Please try again shortly.",
    "DatabaseError": "Temporary issue while accessing data. Please try again shortly.",
    "ValueError": "Invalid data received. Please check your input and try again.",
    "KeyError": "Some required information is missing.",
}


def get_friendly_message(error: Exception) -> str:
    name = type(error).__name__.lower()
    for key, msg in FRIENDLY_MESSAGES.items():
        if key.lower() in name:
            return msg
    return "Something went wrong on our end. Please try again."
