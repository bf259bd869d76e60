"""Hedera Consensus Service access.

- Writes (topic messages, topic creation) go through the Hiero SDK.
- Reads (topic history, EVM address lookups) go through the public mirror node.
- Nothing here logs message contents or keys.
"""
