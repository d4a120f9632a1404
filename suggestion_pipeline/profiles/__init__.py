"""
Coaching profiles for the suggestion pipeline.

Each profile defines:
- name: Profile identifier
- description: Short human-readable summary
- system_prompt: Fixed instruction block sent before every transcript
"""
