"""JSON-RPC 2.0 messages, framing and connections."""