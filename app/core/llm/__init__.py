"""LLM integration layer.

This package is intentionally small and conservative:
- No prompt/output logging (may contain PHI).
- Configured through an explicit `OpenAIConfig`, never the process environment.
- Replies come back as `ParsedReply | UnparsedReply`; callers decide what a
  non-JSON answer means for them.
"""
