from __future__ import annotations

from datetime import date
from typing import Dict, List, Optional

from ..domain.models import PrdTemplate


DATE_TOKEN = "{date}"


_WEB_APP = """# Product Requirements Document - Web Application

## Overview
**Product Name:** [Your App Name]
**Version:** 1.0
**Date:** {date}
**Author:** [Your Name]

## Executive Summary
Brief description of what this web application will do and why it's needed.

## Product Goals
- Goal 1: [Specific measurable goal]
- Goal 2: [Specific measurable goal]
- Goal 3: [Specific measurable goal]

## User Stories
### Core Features
1. **User Registration & Authentication**
   - As a user, I want to create an account so I can access personalized features
   - As a user, I want to log in securely so my data is protected
   - As a user, I want to reset my password if I forget it

2. **Main Application Features**
   - As a user, I want to [core feature 1] so I can [benefit]
   - As a user, I want to [core feature 2] so I can [benefit]

3. **User Interface**
   - As a user, I want a responsive design so I can use the app on any device
   - As a user, I want intuitive navigation so I can easily find features

## Technical Requirements
### Frontend
- Framework: [React/Vue/Angular]
- Styling: [CSS framework]
- State Management: [Redux/Vuex/Context API]

### Backend
- Runtime: [Node.js/Python/Java]
- Database: [PostgreSQL/MongoDB/MySQL]
- API: [REST/GraphQL]
- Authentication: [JWT/OAuth]

### Infrastructure
- Hosting: [Vercel/AWS/Heroku]
- CDN: [CloudFlare/AWS CloudFront]
- Monitoring: [Sentry/DataDog]

## Success Metrics
- User engagement metrics
- Performance benchmarks (load time < 2s)
- Error rates < 1%
- User satisfaction scores

## Timeline
- Phase 1: Core functionality (4-6 weeks)
- Phase 2: Advanced features (2-4 weeks)
- Phase 3: Polish and launch (2 weeks)

## Constraints & Assumptions
- Budget constraints
- Technical limitations
- Team size and expertise
- Timeline constraints
"""


_API = """# Product Requirements Document - REST API

## Overview
**API Name:** [Your API Name]
**Version:** v1.0
**Date:** {date}
**Author:** [Your Name]

## Executive Summary
Description of the API's purpose, target users, and primary use cases.

## API Goals
- Goal 1: Provide secure data access
- Goal 2: Ensure scalable architecture
- Goal 3: Maintain high availability (99.9% uptime)

## Functional Requirements
### Core Endpoints
1. **Authentication Endpoints**
   - POST /api/auth/login - User authentication
   - POST /api/auth/logout - User logout
   - POST /api/auth/refresh - Token refresh

2. **Resource Management**
   - GET /api/[resource] - List resources with pagination
   - GET /api/[resource]/:id - Get a specific resource
   - POST /api/[resource] - Create a new resource
   - PUT /api/[resource]/:id - Update an existing resource
   - DELETE /api/[resource]/:id - Delete a resource

## Non-Functional Requirements
### Performance
- Response time: < 200ms for 95% of requests
- Throughput: 1000+ requests/second
- Concurrent users: 10,000+

### Security
- HTTPS only
- Rate limiting per client
- Input validation and sanitization

## Technical Stack
- Runtime: [Node.js/Python/Go/Java]
- Framework: [Express/FastAPI/Gin/Spring Boot]
- Database: [PostgreSQL/MongoDB]
- Cache: [Redis/Memcached]
- Documentation: [OpenAPI/Swagger]

## Success Metrics
- API uptime > 99.9%
- Average response time < 200ms
- Zero critical security vulnerabilities
- Developer adoption metrics
"""


_MOBILE_APP = """# Product Requirements Document - Mobile Application

## Overview
**App Name:** [Your App Name]
**Platform:** iOS / Android / Cross-platform
**Version:** 1.0
**Date:** {date}
**Author:** [Your Name]

## Executive Summary
Brief description of the mobile app's purpose, target audience, and key value proposition.

## Product Goals
- Goal 1: [Specific user engagement goal]
- Goal 2: [Specific performance goal]
- Goal 3: [Specific business goal]

## User Stories
### Core Features
1. **Onboarding & Authentication**
   - As a new user, I want a simple onboarding process
   - As a user, I want to sign up with email or social media
   - As a user, I want biometric authentication for quick access

2. **Main App Features**
   - As a user, I want [core feature 1] so I can [benefit]
   - As a user, I want [core feature 2] so I can [benefit]

3. **Notifications & Engagement**
   - As a user, I want relevant push notifications
   - As a user, I want to customize notification preferences

## Technical Requirements
- Framework: [React Native/Flutter/Native]
- Backend: [Firebase/Custom API]
- Analytics: [Firebase Analytics/Mixpanel]
- Offline functionality and data synchronization

## Success Metrics
- App store ratings > 4.0
- User retention rates
- Daily/Monthly active users
- App performance metrics
- Conversion rates
"""


_DATA_ANALYSIS = """# Product Requirements Document - Data Analysis Project

## Overview
**Project Name:** [Your Analysis Project]
**Analysis Type:** [Descriptive/Predictive/Prescriptive]
**Date:** {date}
**Author:** [Your Name]

## Executive Summary
Description of the business problem, data sources, and expected insights.

## Project Goals
- Goal 1: [Specific business question to answer]
- Goal 2: [Specific prediction to make]
- Goal 3: [Specific recommendation to provide]

## Data Requirements
### Data Sources
1. **Primary Data**
   - Source: [Database/API/Files]
   - Format: [CSV/JSON/SQL]
   - Update frequency: [Real-time/Daily/Weekly]

2. **External Data**
   - Third-party APIs
   - Public datasets

### Data Quality
- Data completeness and accuracy thresholds
- Missing data handling strategy

## Technical Requirements
- Languages: [Python/R/SQL]
- Libraries: [pandas/numpy/scikit-learn]
- Visualization: [Tableau/PowerBI/matplotlib]

## Deliverables
- Executive summary dashboard
- Reproducible analysis scripts
- Data pipeline code
- Documentation and validation code

## Timeline
- Phase 1: Data collection and exploration (2 weeks)
- Phase 2: Analysis and modeling (3 weeks)
- Phase 3: Reporting and visualization (1 week)
- Phase 4: Stakeholder presentation (1 week)

## Success Metrics
- Stakeholder satisfaction with insights
- Accuracy of predictions (if applicable)
- Business impact of recommendations
- Reproducibility of results
"""


_TEMPLATES: List[Dict[str, str]] = [
    {
        "id": "web-app",
        "name": "Web Application",
        "description": "Template for web application projects with frontend and backend components",
        "category": "web",
        "content": _WEB_APP,
    },
    {
        "id": "api",
        "name": "REST API",
        "description": "Template for REST API development projects",
        "category": "backend",
        "content": _API,
    },
    {
        "id": "mobile-app",
        "name": "Mobile Application",
        "description": "Template for mobile app development projects (iOS/Android)",
        "category": "mobile",
        "content": _MOBILE_APP,
    },
    {
        "id": "data-analysis",
        "name": "Data Analysis Project",
        "description": "Template for data analysis and visualization projects",
        "category": "data",
        "content": _DATA_ANALYSIS,
    },
]


def list_templates(today: Optional[date] = None) -> List[PrdTemplate]:
    stamp = (today or date.today()).isoformat()
    return [
        PrdTemplate(
            id=item["id"],
            name=item["name"],
            description=item["description"],
            category=item["category"],
            content=item["content"].replace(DATE_TOKEN, stamp),
        )
        for item in _TEMPLATES
    ]


def get_template(template_id: str, today: Optional[date] = None) -> Optional[PrdTemplate]:
    return next((t for t in list_templates(today) if t.id == template_id), None)
