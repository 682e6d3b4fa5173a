"""Application layer: UI wiring around the rhyme worker client."""
