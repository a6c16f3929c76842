"""Story choice engine: extractor, candidate generator, validator/scorer and integration layer."""
