"""
Provider integration layer.

- base: the StreamableModel contract used by the generation driver.
- registry: static model list, credential lookup, model handle factory.
- discovery: startup discovery of locally served models.
- sdk_selector: provider -> SDK dispatch.
- openai_sdk / claude_sdk / google_sdk: vendor SDK streaming wrappers.
"""
