"""Wire types, protocol codec and logging shared by the RPS client."""
