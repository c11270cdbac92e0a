"""
Streaming continuation core.

- directive: `[Model: ...]` directive parsing for user turns.
- normalizer: builds the outbound message list and picks (provider, model).
- driver: one provider call per segment, live text stream + completion signal.
- splicer: SwitchableStream, the single output channel whose upstream can be
  swapped between segments.
- continuation: ContinuationSession, the segment state machine.
"""
