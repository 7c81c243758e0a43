"""
Retrieval and question answering over the tariff schedule.

- embeddings: Gemini embedding collaborator
- vector_stores: in-memory cosine search over passages
- document_qa: retrieve-then-generate answers
- prompts: prompt templates
"""
