"""Local stand-in for the code generation service.

Picks one of a few canned React components by keyword so the chat keeps
working when the primary model is unreachable or unconfigured.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Tuple

from schemas import CodeArtifact, GenerationResponse, MessageMetadata

FALLBACK_MODEL = 'fallback-system'


@dataclass(frozen=True)
class FallbackTemplate:
    name: str
    label: str
    file: str
    content: str


LOGIN_FORM = '''"use client"

import { useState } from "react"
import { Button } from "@/components/ui/button"
import { Input } from "@/components/ui/input"
import { Card, CardContent, CardDescription, CardHeader, CardTitle } from "@/components/ui/card"
import { Label } from "@/components/ui/label"

export default function LoginForm() {
  const [email, setEmail] = useState("")
  const [password, setPassword] = useState("")

  const handleSubmit = (e: React.FormEvent) => {
    e.preventDefault()
    console.log("Login attempt:", { email, password })
  }

  return (
    <Card className="w-full max-w-md mx-auto">
      <CardHeader>
        <CardTitle>Sign In</CardTitle>
        <CardDescription>Enter your credentials to access your account</CardDescription>
      </CardHeader>
      <CardContent>
        <form onSubmit={handleSubmit} className="space-y-4">
          <div className="space-y-2">
            <Label htmlFor="email">Email</Label>
            <Input
              id="email"
              type="email"
              placeholder="Enter your email"
              value={email}
              onChange={(e) => setEmail(e.target.value)}
              required
            />
          </div>
          <div className="space-y-2">
            <Label htmlFor="password">Password</Label>
            <Input
              id="password"
              type="password"
              placeholder="Enter your password"
              value={password}
              onChange={(e) => setPassword(e.target.value)}
              required
            />
          </div>
          <Button type="submit" className="w-full">
            Sign In
          </Button>
        </form>
      </CardContent>
    </Card>
  )
}'''

DASHBOARD = '''"use client"

import { Card, CardContent, CardDescription, CardHeader, CardTitle } from "@/components/ui/card"
import { Button } from "@/components/ui/button"
import { BarChart3, Users, DollarSign, TrendingUp } from 'lucide-react'

export default function Dashboard() {
  const stats = [
    { title: "Total Users", value: "2,345", icon: Users, change: "+12%" },
    { title: "Revenue", value: "$45,231", icon: DollarSign, change: "+8%" },
    { title: "Growth", value: "23.5%", icon: TrendingUp, change: "+2%" },
    { title: "Analytics", value: "1,234", icon: BarChart3, change: "+5%" },
  ]

  return (
    <div className="p-6 space-y-6">
      <div>
        <h1 className="text-3xl font-bold">Dashboard</h1>
        <p className="text-muted-foreground">Welcome back! Here's what's happening.</p>
      </div>

      <div className="grid grid-cols-1 md:grid-cols-2 lg:grid-cols-4 gap-6">
        {stats.map((stat) => (
          <Card key={stat.title}>
            <CardHeader className="flex flex-row items-center justify-between space-y-0 pb-2">
              <CardTitle className="text-sm font-medium">{stat.title}</CardTitle>
              <stat.icon className="h-4 w-4 text-muted-foreground" />
            </CardHeader>
            <CardContent>
              <div className="text-2xl font-bold">{stat.value}</div>
              <p className="text-xs text-muted-foreground">
                <span className="text-green-600">{stat.change}</span> from last month
              </p>
            </CardContent>
          </Card>
        ))}
      </div>
    </div>
  )
}'''

CUSTOM_BUTTON = '''"use client"

import { Button } from "@/components/ui/button"
import { cn } from "@/lib/utils"
import { Loader2 } from 'lucide-react'

interface CustomButtonProps extends React.ButtonHTMLAttributes<HTMLButtonElement> {
  variant?: "default" | "destructive" | "outline" | "secondary" | "ghost" | "link"
  size?: "default" | "sm" | "lg" | "icon"
  loading?: boolean
  children: React.ReactNode
}

export default function CustomButton({
  variant = "default",
  size = "default",
  loading = false,
  children,
  className,
  disabled,
  ...props
}: CustomButtonProps) {
  return (
    <Button
      variant={variant}
      size={size}
      disabled={disabled || loading}
      className={cn(className)}
      {...props}
    >
      {loading && <Loader2 className="mr-2 h-4 w-4 animate-spin" />}
      {children}
    </Button>
  )
}'''

PLACEHOLDER = '''"use client"

import { Card, CardContent, CardHeader, CardTitle } from "@/components/ui/card"

export default function CustomComponent() {
  return (
    <Card className="w-full max-w-md mx-auto">
      <CardHeader>
        <CardTitle>Custom Component</CardTitle>
      </CardHeader>
      <CardContent>
        <p>This is a basic component structure. Customize it based on your needs.</p>
      </CardContent>
    </Card>
  )
}'''

TEMPLATES = {
    'login': FallbackTemplate('login', 'login form', 'login-form.tsx', LOGIN_FORM),
    'dashboard': FallbackTemplate('dashboard', 'dashboard', 'dashboard.tsx', DASHBOARD),
    'button': FallbackTemplate('button', 'custom button', 'custom-button.tsx', CUSTOM_BUTTON),
}

GENERIC_TEMPLATE = FallbackTemplate('generic', 'custom component', 'custom-component.tsx', PLACEHOLDER)

# checked in this order, first hit wins
KEYWORDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ('login', ('login', 'sign in', 'auth')),
    ('dashboard', ('dashboard', 'stats', 'analytics')),
    ('button', ('button', 'btn')),
)


def match_template(text: str) -> Optional[FallbackTemplate]:
    lowered = (text or '').lower()
    for name, words in KEYWORDS:
        if any(word in lowered for word in words):
            return TEMPLATES[name]
    return None


def resolve_template(text: str) -> FallbackTemplate:
    return match_template(text) or GENERIC_TEMPLATE


def build_fallback_response(message: str, thread_id: str = None) -> GenerationResponse:
    template = match_template(message)
    if template is not None:
        text = (
            f"I'll create a {template.label} component for you.\n\n"
            "This component uses modern React patterns with TypeScript and Tailwind CSS, "
            "following best practices for accessibility and responsive design."
        )
    else:
        template = GENERIC_TEMPLATE
        text = (
            f'I understand you want to create: "{message}"\n\n'
            "I'm currently using a fallback system. For the best experience, please ensure "
            "the AI generation service is properly configured.\n\n"
            "Here's a basic React component structure you can customize:"
        )

    return GenerationResponse(
        message=text,
        code=[CodeArtifact(language='tsx', file_path=template.file, content=template.content)],
        metadata=MessageMetadata(
            model=FALLBACK_MODEL,
            timestamp=datetime.now(timezone.utc).isoformat(),
            thread_id=thread_id,
        ),
    )
