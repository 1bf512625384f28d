from __future__ import annotations

SYSTEM_PROMPT = (
    "You are a helpful assistant that converts genealogical text into Mermaid flowchart syntax."
)

PEDIGREE_PROMPT = """Convert the following genealogical text into Mermaid flowchart syntax for a \
pedigree chart. Use a top-to-bottom layout.

Rules:

1. Create a node for every individual, named or unnamed. Unnamed individuals get numbered \
placeholders in the order they are mentioned:
   - husbands: husband1[Husband 1], husband2[Husband 2]
   - wives: wife1[Wife 1]
   - sons: son1[Son 1]; daughters: daughter1[Daughter 1]
   - parents: father1[Father 1], mother1[Mother 1], or parent1[Parent 1] when gender is unknown
   - children of unknown gender: child1[Child 1]
   Never create nodes for words such as "marriage" or "married".

2. Named individuals use a lowercase id without spaces and the name as label, e.g. john[John].

3. Parents connect DIRECTLY to each child. Two parents of one child are written on one line \
with &: john[John] --> sarah[Sarah] & mary[Mary] --> sarah[Sarah]
   Never add intermediate marriage nodes (no M1, M2, ...).

4. When a number of children is given, create all of them (for "5 children" create child1 \
through child5) and connect both parents to each one.

5. Attach every child to the parent pair the text names, e.g. "with her first husband" versus \
"with her second husband". Do not infer relationships the text does not state.

Example for "Mudra had daughter Sarah and son Jack with her first husband, then 1 son with \
Michael":
mudra[Mudra] --> sarah[Sarah] & husband1[Husband 1] --> sarah[Sarah]
mudra[Mudra] --> jack[Jack] & husband1[Husband 1] --> jack[Jack]
mudra[Mudra] --> son1[Son 1] & michael[Michael] --> son1[Son 1]

6. Start with: graph TD

Output ONLY the Mermaid code block, no explanations."""
