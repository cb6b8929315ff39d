"""Skill synonym table and canonicalization.

Every comparison between a requirement and candidate evidence goes through
``canonicalize`` first so that "K8s", "kube" and "Kubernetes" are one skill.
"""

import re

# ---------------------------------------------------------------------------
# Grouped synonyms: the first entry of each group is the canonical form
# ---------------------------------------------------------------------------
SYNONYM_GROUPS: list[list[str]] = [
    # JavaScript ecosystem
    ["javascript", "js", "ecmascript", "es6", "es2015"],
    ["typescript", "ts"],
    ["react", "react.js", "reactjs", "react js"],
    ["react native", "reactnative", "react-native"],
    ["angular", "angular.js", "angularjs", "angular 2+"],
    ["vue", "vue.js", "vuejs", "vue 3"],
    ["next.js", "nextjs", "next js"],
    ["node.js", "node", "nodejs", "node js"],
    ["express", "express.js", "expressjs"],
    # Backend languages and frameworks
    ["python", "python3", "python 3", "py"],
    ["java", "java se", "java ee", "j2ee"],
    ["spring", "spring boot", "spring framework", "springboot"],
    ["c#", "csharp", "c sharp", ".net", "dotnet"],
    ["c++", "cpp", "c plus plus"],
    ["go", "golang", "go lang"],
    ["rust", "rust lang", "rustlang"],
    ["ruby", "ruby on rails", "rails", "ror", "rb"],
    ["php", "laravel", "symfony"],
    ["swift", "swiftui"],
    ["kotlin", "kotlin/jvm"],
    ["fastapi", "fast api"],
    # Databases
    ["sql", "structured query language"],
    ["mysql", "my sql"],
    ["postgresql", "postgres", "psql", "pg"],
    ["mongodb", "mongo", "mongo db"],
    ["sql server", "mssql", "ms sql"],
    ["dynamodb", "dynamo", "dynamo db"],
    ["redis", "redis cache"],
    ["elasticsearch", "elastic search", "elastic", "opensearch"],
    ["kafka", "apache kafka"],
    ["rabbitmq", "rabbit mq", "amqp"],
    # Cloud & DevOps
    ["aws", "amazon web services", "amazon aws"],
    ["gcp", "google cloud", "google cloud platform"],
    ["azure", "microsoft azure", "ms azure"],
    ["docker", "containerization", "containers", "docker compose"],
    ["kubernetes", "k8s", "k8", "kube"],
    ["terraform", "terraform iac"],
    ["ansible", "ansible automation"],
    ["jenkins", "jenkins ci"],
    ["github actions", "github action", "gh actions"],
    ["ci/cd", "cicd", "ci cd", "continuous integration", "continuous deployment"],
    ["git", "version control"],
    ["linux", "unix", "ubuntu", "centos", "debian"],
    # APIs
    ["rest", "rest api", "rest apis", "restful", "restful api"],
    ["graphql", "graph ql"],
    ["grpc", "g rpc"],
    ["microservices", "micro services", "micro-services"],
    # AI/ML
    ["machine learning", "ml", "ai/ml"],
    ["deep learning", "dl"],
    ["artificial intelligence", "ai"],
    ["nlp", "natural language processing"],
    ["computer vision", "cv", "image recognition"],
    ["llm", "large language model", "large language models"],
    ["generative ai", "gen ai", "genai"],
    ["tensorflow", "tf", "tensor flow"],
    ["pytorch", "py torch", "torch"],
    ["scikit-learn", "sklearn", "scikit learn"],
    ["pandas", "pd"],
    ["numpy", "np"],
    # Data platforms
    ["spark", "apache spark", "pyspark"],
    ["hadoop", "apache hadoop", "hdfs"],
    ["airflow", "apache airflow"],
    ["dbt", "data build tool"],
    ["snowflake", "snowflake db"],
    ["databricks", "data bricks"],
    ["tableau", "tableau desktop"],
    ["power bi", "powerbi", "power-bi"],
    # Frontend tooling
    ["html", "html5"],
    ["css", "css3", "scss", "sass", "less"],
    ["tailwind", "tailwind css", "tailwindcss"],
    ["bootstrap", "bootstrap 5"],
    ["webpack", "webpack 5"],
    ["vite", "vitejs"],
    # Methodologies and tools
    ["agile", "scrum", "kanban", "agile methodology", "agile/scrum"],
    ["jira", "atlassian jira"],
    ["figma", "figma design"],
    ["project management", "project mgmt"],
]

_SYNONYM_MAP: dict[str, str] = {}
for _group in SYNONYM_GROUPS:
    _canonical = _group[0]
    for _term in _group:
        _SYNONYM_MAP.setdefault(_term.lower(), _canonical)


def canonical_term(text: str) -> str:
    """Lowercase, fold curly quotes, drop punctuation other than ``#+.-/``, collapse spaces."""
    s = str(text or "").lower()
    s = s.replace("‘", "'").replace("’", "'")
    s = re.sub(r"[^a-z0-9#+./\s-]", " ", s)
    return re.sub(r"\s+", " ", s).strip().rstrip(".")


def canonicalize(skill: str) -> str:
    """Resolve a skill token to its canonical form. Unknown tokens are returned normalized."""
    lower = canonical_term(skill)
    return _SYNONYM_MAP.get(lower, lower)


def normalize_skill_set(skills) -> set[str]:
    return {canonicalize(s) for s in skills if s and canonical_term(s)}


def aliases_of(canonical: str) -> list[str]:
    """All surface forms (canonical first) that resolve to ``canonical``."""
    forms = [canonical]
    forms.extend(term for term, target in _SYNONYM_MAP.items() if target == canonical and term != canonical)
    return forms
