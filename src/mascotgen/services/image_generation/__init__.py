"""Image generation: Gemini client, personas, prompt parsing, template images."""
