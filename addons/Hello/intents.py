INTENTS = ["members"]
