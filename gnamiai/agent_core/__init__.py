"""Agent core: the conversational turn pipeline.

- ``schemas``: action union, action results, persona fields, model requests.
- ``protocol``: extract and execute ``gnami-action`` blocks from model text.
- ``capabilities``: the shell, skill and integration executors.
- ``persona`` / ``workspace`` / ``skills``: durable assistant identity and skills.
- ``model_provider``: pydantic_ai model calls with fallback.
- ``runtime``: the LangGraph turn engine.
"""
