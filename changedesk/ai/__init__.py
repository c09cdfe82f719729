"""
ChangeDesk — IT Change Request Tracker
AI module.

Submodules:
    - gateway: LLM Gateway (provider routing, retry, timeout)
    - summarizer: change-request summary assistant with fallback text
"""
