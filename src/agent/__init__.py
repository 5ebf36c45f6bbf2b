"""Recommendation agent for the Log Analytics cost optimizer.

- system_prompt.txt: Card format and plan rules for the AI model
- run_agent.py: Command line runner with Azure OpenAI and rule-based fallback
"""
