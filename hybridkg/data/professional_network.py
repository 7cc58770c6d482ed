"""
Sample Professional Network
===========================

Ten people with their expertise, the collaborations between them and the
projects some of them work on.

The corpus is built so the query "help building search with neural
embeddings" exercises all three signals:
- BM25 finds the literal terms ("neural", "embeddings")
- vectors find semantically close profiles (search systems, ML expertise)
- graph expansion surfaces collaborators of the direct hits
"""

from typing import List

from hybridkg.storage.models import Entity, RelationshipEdge

PEOPLE = "people"
PROJECTS = "projects"

EXAMPLE_QUERY = "help building search with neural embeddings"

_PEOPLE = [
    {
        "key": "alice",
        "name": "Alice Chen",
        "text": (
            "Senior Machine Learning Engineer specializing in large language models and "
            "vector embeddings. Passionate about semantic search and RAG systems. "
            "8 years of experience in ML and AI."
        ),
        "role": "Senior ML Engineer",
        "skills": ["Python", "PyTorch", "Vector Search", "LLMs", "Semantic Search"],
        "years_of_experience": 8,
        "expertise_level": "Senior",
    },
    {
        "key": "bob",
        "name": "Bob Martinez",
        "text": (
            "Full-stack developer with expertise in graph databases and distributed "
            "systems. Loves building scalable backend architectures. "
            "6 years building production systems."
        ),
        "role": "Backend Developer",
        "skills": ["Node.js", "FalkorDB", "Graph Databases", "Microservices"],
        "years_of_experience": 6,
        "expertise_level": "Mid-Level",
    },
    {
        "key": "carol",
        "name": "Carol Williams",
        "text": (
            "Data Scientist focusing on natural language processing and information "
            "retrieval. Experienced with BM25 and ranking algorithms. "
            "5 years in NLP and search."
        ),
        "role": "Data Scientist",
        "skills": ["NLP", "Information Retrieval", "BM25", "Python"],
        "years_of_experience": 5,
        "expertise_level": "Mid-Level",
    },
    {
        "key": "david",
        "name": "David Kim",
        "text": (
            "DevOps Engineer managing cloud infrastructure and containerized "
            "applications. Expert in Docker, Kubernetes, and CI/CD pipelines. "
            "7 years in DevOps."
        ),
        "role": "DevOps Engineer",
        "skills": ["Docker", "Kubernetes", "AWS", "Terraform"],
        "years_of_experience": 7,
        "expertise_level": "Senior",
    },
    {
        "key": "emma",
        "name": "Emma Thompson",
        "text": (
            "Principal Research Scientist working on neural search and embedding models. "
            "Published 15+ papers on hybrid search techniques combining traditional and "
            "modern approaches. 12 years in ML research, recognized expert in neural "
            "embeddings."
        ),
        "role": "Principal Research Scientist",
        "skills": ["Research", "Neural Networks", "Embeddings", "Academic Writing", "Hybrid Search"],
        "years_of_experience": 12,
        "expertise_level": "Expert",
    },
    {
        "key": "frank",
        "name": "Frank Rodriguez",
        "text": (
            "Database Administrator with deep knowledge of multi-model databases. "
            "Specializes in query optimization and indexing strategies. "
            "10 years managing enterprise databases."
        ),
        "role": "Senior DBA",
        "skills": ["Database Design", "Query Optimization", "Indexing", "Performance Tuning"],
        "years_of_experience": 10,
        "expertise_level": "Senior",
    },
    {
        "key": "grace",
        "name": "Grace Lee",
        "text": (
            "Product Manager for AI-powered search products. Bridging technical "
            "implementation with user needs and business requirements. "
            "6 years in product management."
        ),
        "role": "Product Manager",
        "skills": ["Product Strategy", "User Research", "AI Products", "Agile"],
        "years_of_experience": 6,
        "expertise_level": "Mid-Level",
    },
    {
        "key": "henry",
        "name": "Henry Patel",
        "text": (
            "Principal Software Architect designing enterprise search solutions. "
            "Advocates for combining semantic understanding with traditional keyword "
            "matching. 15 years architecting large-scale systems."
        ),
        "role": "Principal Architect",
        "skills": ["System Design", "Search Architecture", "Scalability", "Documentation"],
        "years_of_experience": 15,
        "expertise_level": "Expert",
    },
    {
        "key": "iris",
        "name": "Iris Wang",
        "text": (
            "Frontend Developer creating intuitive search interfaces. Passionate about "
            "user experience and real-time search suggestions. "
            "4 years in frontend development."
        ),
        "role": "Frontend Developer",
        "skills": ["React", "TypeScript", "UI/UX", "Performance"],
        "years_of_experience": 4,
        "expertise_level": "Mid-Level",
    },
    {
        "key": "jack",
        "name": "Jack Brown",
        "text": (
            "Technical Writer and developer advocate. Creates documentation and "
            "tutorials for complex search systems and AI tools. "
            "5 years in technical communications."
        ),
        "role": "Developer Advocate",
        "skills": ["Technical Writing", "Developer Relations", "Teaching", "Content Creation"],
        "years_of_experience": 5,
        "expertise_level": "Mid-Level",
    },
]

# (source, target, type, project)
_RELATIONSHIPS = [
    # Alice (ML Engineer)
    ("alice", "emma", "collaborates_with", "Neural search research"),
    ("alice", "carol", "works_with", "Hybrid ranking systems"),
    ("alice", "henry", "consults_with", "Search architecture design"),
    # Bob (Backend)
    ("bob", "frank", "works_with", "Database optimization"),
    ("bob", "david", "collaborates_with", "Infrastructure deployment"),
    ("bob", "henry", "reports_to", "Backend team"),
    # Carol (Data Scientist)
    ("carol", "emma", "collaborates_with", "Research papers"),
    ("carol", "alice", "mentors", "ML best practices"),
    # Emma (Research)
    ("emma", "jack", "works_with", "Research documentation"),
    # Frank (DBA)
    ("frank", "henry", "advises", "Database strategy"),
    # Grace (PM)
    ("grace", "alice", "manages", "ML features roadmap"),
    ("grace", "iris", "manages", "UI/UX improvements"),
    ("grace", "henry", "works_with", "Product strategy"),
    # Henry (Architect)
    ("henry", "jack", "collaborates_with", "Architecture docs"),
    # Iris (Frontend)
    ("iris", "bob", "works_with", "API integration"),
    ("iris", "jack", "collaborates_with", "UI documentation"),
    # Jack (DevRel)
    ("jack", "david", "works_with", "Deployment guides"),
]

# (person, project, role)
_PROJECT_MEMBERSHIPS = [
    ("emma", "neural-search", "Research lead"),
    ("alice", "neural-search", "ML engineer"),
    ("henry", "search-platform", "Architect"),
    ("bob", "search-platform", "Backend"),
]

RELATIONSHIP_TYPES = frozenset(
    [rel_type for _, _, rel_type, _ in _RELATIONSHIPS] + ["works_on"]
)


def person_id(key: str) -> str:
    return f"{PEOPLE}/{key}"


def project_id(key: str) -> str:
    return f"{PROJECTS}/{key}"


def sample_entities() -> List[Entity]:
    """People of the sample network (fresh objects on every call, no vectors)."""
    entities = []
    for person in _PEOPLE:
        attributes = {k: v for k, v in person.items() if k not in ("key", "text")}
        attributes["skills"] = list(person["skills"])
        entities.append(Entity(
            id=person_id(person["key"]),
            body=person["text"],
            attributes=attributes,
        ))
    return entities


def sample_relationships() -> List[RelationshipEdge]:
    """Collaborations between people, then project memberships."""
    edges = [
        RelationshipEdge(
            source=person_id(source),
            target=person_id(target),
            type=rel_type,
            attributes={"project": project},
        )
        for source, target, rel_type, project in _RELATIONSHIPS
    ]
    edges.extend(
        RelationshipEdge(
            source=person_id(person),
            target=project_id(project),
            type="works_on",
            attributes={"role": role},
        )
        for person, project, role in _PROJECT_MEMBERSHIPS
    )
    return edges
