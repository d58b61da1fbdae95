"""Chat completion: query building, streaming client, stream reassembly."""
