"""Constants for mode routing and canned replies."""

# Phrases that show the customer wants to order
ORDERING_INTENT_INDICATORS = [
    "i'd like",
    "i would like",
    "i'll have",
    "i will have",
    "i'll take",
    "i will take",
    "i'll get",
    "i'll go with",
    "can i get",
    "could i get",
    "can i have",
    "could i have",
    "may i have",
    "let me get",
    "let's do",
    "i want",
    "get me",
    "give me",
    "order",
    "add",
    "make it",
    "make that",
    "confirm",
    "check out",
    "checkout",
]

# Phrases that show the customer is still exploring
RECOMMENDATION_INDICATORS = [
    "recommend",
    "suggest",
    "suggestion",
    "what's good",
    "what is good",
    "what do you have",
    "what should",
    "something",
    "anything",
    "which",
    "popular",
    "difference between",
]

# Reply when the model keeps calling tools past the per-turn bound
LOOP_EXHAUSTED_REPLY = (
    "Sorry, I got a bit tangled up there. Could you tell me again what you'd like?"
)

# Reply when the model capability is unavailable
GENERIC_FAILURE_REPLY = "Sorry, I'm having trouble right now. Please try again in a moment."

# Reply when the model returns an empty message
EMPTY_REPLY = "Is there anything else I can get for you?"
